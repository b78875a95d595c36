# app/core/auth.py
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.config import get_settings

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated).
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionIdentity:
    """
    Who is calling, as far as the storefront can tell.

    - session_id: our own cookie, scopes the cart store + guest snapshot
    - token: backend JWT (cookie or bearer), forwarded upstream
    - cookies: browser cookies forwarded upstream (credentials: include)
    """

    session_id: str
    token: str | None = None
    user_id: str | None = None
    email: str | None = None
    cookies: dict[str, str] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token and self.user_id)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode a backend access token (JWT).

    Verification:
      - if JWT_SECRET is configured: signature + expiration
      - otherwise the claims are only read; the backend still rejects
        bad tokens on every forwarded call
      - audience is NOT verified

    Raises:
        HTTPException(401): if token is malformed/invalid/expired.
    """
    try:
        if settings.JWT_SECRET:
            return jwt.decode(
                token,
                settings.JWT_SECRET,
                algorithms=[settings.JWT_ALG],
                options={"verify_aud": False},
            )
        return jwt.get_unverified_claims(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def identity_from_token(
    session_id: str,
    token: str | None,
    cookies: dict[str, str] | None = None,
) -> SessionIdentity:
    """
    Build a SessionIdentity; no token => guest.

    Raises:
        HTTPException(401): if the token is invalid or has no user id.
    """
    cookies = dict(cookies or {})
    cookies.pop(settings.SESSION_COOKIE_NAME, None)

    if not token:
        return SessionIdentity(session_id=session_id, cookies=cookies)

    payload = decode_access_token(token)
    # Backend tokens carry `id`; standard ones `sub`.
    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing user id",
        )

    return SessionIdentity(
        session_id=session_id,
        token=token,
        user_id=str(user_id),
        email=payload.get("email"),
        cookies=cookies,
    )


def ensure_session_id(request: Request, response: Response) -> str:
    """
    Return the storefront session id, issuing the cookie on first visit.
    """
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not session_id:
        session_id = uuid.uuid4().hex
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            session_id,
            httponly=True,
            samesite="lax",
        )
    return session_id


def get_identity(
    request: Request,
    session_id: str = Depends(ensure_session_id),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionIdentity:
    """
    Resolve the caller.

    Flow:
      1. JWT cookie wins (mirrored into Authorization upstream).
      2. Else an explicit Bearer header.
      3. Else guest.
    """
    token = request.cookies.get(settings.JWT_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials
    return identity_from_token(session_id, token, dict(request.cookies))


def require_auth(identity: SessionIdentity = Depends(get_identity)) -> SessionIdentity:
    """
    Enforce authentication (checkout, server refresh).

    Raises:
        HTTPException(401): for guests.
    """
    if not identity.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return identity
