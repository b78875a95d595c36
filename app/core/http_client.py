# app/core/http_client.py
import logging
from typing import Any

import httpx

from app.core.config import get_settings

settings = get_settings()

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Something went wrong"


class ApiError(Exception):
    """
    Raised for any failed call to the pharmacy backend.

    Attributes:
        message: the backend's `message` field (or a transport error text).
        status_code: HTTP status, or None for transport failures.
        data: decoded response body when there was one.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.data = data


def create_http_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """
    Build the shared httpx client used for all backend traffic.

    `transport` is only passed in tests (httpx.MockTransport).
    """
    return httpx.AsyncClient(
        base_url=settings.backend_base_url,
        timeout=settings.BACKEND_TIMEOUT_SECONDS,
        transport=transport,
    )


class BackendClient:
    """
    Thin JSON client for the pharmacy backend.

    Mirrors the storefront's fetch helper:
      - every request carries the browser's cookies (credentials included)
      - if a JWT cookie is present it is also sent as a Bearer token
      - 204 => None
      - non-2xx => ApiError with the backend's message
    No retries, no backoff.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        token: str | None = None,
        cookies: dict[str, str] | None = None,
    ):
        self.http = http
        self.token = token
        self.cookies = dict(cookies or {})

    def authenticate(self, token: str | None, cookies: dict[str, str] | None = None) -> None:
        """Refresh the credentials forwarded with each request."""
        self.token = token
        if cookies is not None:
            self.cookies = dict(cookies)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.cookies:
            headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in self.cookies.items())
        return headers

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"

        try:
            response = await self.http.request(
                method,
                endpoint,
                json=data,
                params=params,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"Backend request {method} {endpoint} failed: {e}")
            raise ApiError(str(e) or DEFAULT_ERROR_MESSAGE) from e

        if response.status_code == 204:
            return None

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = DEFAULT_ERROR_MESSAGE
            if isinstance(body, dict) and body.get("message"):
                message = body["message"]
            elif body is None and response.text:
                message = response.text

            # 401 is routine for guests; don't flood the log
            if response.status_code != 401:
                logger.error(
                    f"Backend error {response.status_code} on {method} {endpoint}: {message}"
                )
            raise ApiError(message, status_code=response.status_code, data=body)

        return body
