# app/services/session_service.py
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from cachetools import TTLCache
from fastapi import HTTPException, status
from sqlalchemy.engine import Engine

from app.core.auth import SessionIdentity
from app.core.config import get_settings
from app.core.http_client import ApiError, BackendClient
from app.core.result import Err
from app.services.cart_gateway import RemoteCartGateway
from app.services.cart_merge import CartMergeController
from app.services.cart_service import CartStore
from app.services.cart_storage import LocalCartStorage, RemoteCartStorage

settings = get_settings()

logger = logging.getLogger(__name__)


@dataclass
class CartSession:
    """
    Everything that belongs to one browser session.

    `notice` holds a message for the next response (merge problems,
    server cart unavailable at sign-in).
    """

    session_id: str
    client: BackendClient
    guest_storage: LocalCartStorage
    store: CartStore
    merge: CartMergeController
    hydrated: bool = False
    notice: str | None = None

    def pop_notice(self) -> str | None:
        notice, self.notice = self.notice, None
        return notice


class CartSessionRegistry:
    """
    Holds one CartStore per browser session and keeps it in the right mode.

    On every request the caller's identity is compared with the store's:
      - guest -> signed in: switch to the remote cart, load it, then merge
        the guest snapshot into it. If the server cart can't be loaded the
        session stays in guest mode and the next request tries again.
      - signed in -> guest (logout): switch back to local storage and
        reset the visible cart

    Sessions idle for CART_SESSION_TTL_SECONDS are dropped, and at most
    CART_SESSION_MAX are kept. Nothing is lost: guest carts are in the
    local store and signed-in carts on the backend.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        engine: Engine,
        maxsize: int = settings.CART_SESSION_MAX,
        ttl: float = settings.CART_SESSION_TTL_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.http = http
        self.engine = engine
        self._sessions: TTLCache[str, CartSession] = TTLCache(maxsize, ttl, timer=timer)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def _create(self, session_id: str) -> CartSession:
        client = BackendClient(self.http)
        guest_storage = LocalCartStorage(self.engine, namespace=session_id)
        store = CartStore(guest_storage, authenticated=False)
        return CartSession(
            session_id=session_id,
            client=client,
            guest_storage=guest_storage,
            store=store,
            merge=CartMergeController(store, guest_storage),
        )

    async def resolve(self, identity: SessionIdentity) -> CartSession:
        """
        Return the session's cart, hydrated and in sync with `identity`.
        """
        entry = self._sessions.get(identity.session_id)
        if entry is None:
            entry = self._create(identity.session_id)
        # re-insert so the idle timer restarts
        self._sessions[identity.session_id] = entry

        entry.client.authenticate(identity.token, identity.cookies)

        if identity.is_authenticated and not entry.store.authenticated:
            await self._sign_in(entry, identity)
        elif not identity.is_authenticated and entry.store.authenticated:
            await self._sign_out(entry)

        if not entry.hydrated:
            await entry.store.hydrate()
            entry.hydrated = True
        return entry

    async def _sign_in(self, entry: CartSession, identity: SessionIdentity) -> None:
        remote = RemoteCartStorage(RemoteCartGateway(entry.client))
        entry.store.use_storage(remote, authenticated=True)

        # The visible cart is still the guest cart until the fetch succeeds;
        # merging on top of it would add every guest line twice.
        result = await entry.store.hydrate()
        if isinstance(result, Err):
            entry.store.use_storage(entry.guest_storage, authenticated=False)
            entry.notice = result.error.message
            return

        entry.hydrated = True
        report = await entry.merge.on_auth_change(True, identity.user_id)
        entry.notice = report.message if report else None

    async def _sign_out(self, entry: CartSession) -> None:
        entry.store.use_storage(entry.guest_storage, authenticated=False)
        entry.store.reset()
        await entry.merge.on_auth_change(False, None)
        entry.notice = None
        entry.hydrated = False


class AuthService:
    """
    Login / logout / profile against the backend's /users endpoints.
    """

    async def login(self, client: BackendClient, email: str, password: str) -> dict[str, Any]:
        """
        Returns the backend response; it carries `token` and `data.user`.

        Raises:
            HTTPException(401): if the backend rejects the credentials.
        """
        try:
            payload = await client.request(
                "/users/login", "POST", {"email": email, "password": password}
            )
        except ApiError as e:
            raise HTTPException(
                status_code=e.status_code or status.HTTP_502_BAD_GATEWAY,
                detail=e.message,
            )

        if not isinstance(payload, dict) or not payload.get("token"):
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Login response did not include a token",
            )
        return payload

    async def logout(self, client: BackendClient) -> None:
        # The storefront forgets the session even if the backend call fails.
        try:
            await client.request("/users/logout", "GET")
        except ApiError as e:
            logger.warning(f"Backend logout failed: {e.message}")

    async def get_me(self, client: BackendClient) -> dict[str, Any] | None:
        try:
            payload = await client.request("/users/me", "GET")
        except ApiError as e:
            if e.status_code == 401:
                return None
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

        if isinstance(payload, dict):
            data = payload.get("data")
            if isinstance(data, dict):
                return data.get("user") or data
        return payload
