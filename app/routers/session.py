# app/routers/session.py
from fastapi import APIRouter, Depends, Response

from app.core.auth import SessionIdentity, get_identity, identity_from_token
from app.core.config import get_settings
from app.core.dependencies import get_backend_client, get_registry
from app.core.http_client import BackendClient
from app.schemas.session import LoginRequest, SessionRead
from app.services.session_service import AuthService, CartSessionRegistry

settings = get_settings()

router = APIRouter(prefix="/session", tags=["Session"])

service = AuthService()


@router.post("/login", response_model=SessionRead)
async def login(
    payload: LoginRequest,
    response: Response,
    identity: SessionIdentity = Depends(get_identity),
    client: BackendClient = Depends(get_backend_client),
    registry: CartSessionRegistry = Depends(get_registry),
):
    """
    Sign in through the backend.

    - Stores the backend JWT in the `jwt` cookie.
    - Moves the guest cart of this session into the user's cart; items
      that could not be moved are listed in `message`.
    """
    data = await service.login(client, payload.email, payload.password)
    token = data["token"]

    response.set_cookie(settings.JWT_COOKIE_NAME, token, httponly=True, samesite="lax")

    signed_in = identity_from_token(identity.session_id, token, identity.cookies)
    cart_session = await registry.resolve(signed_in)

    user = (data.get("data") or {}).get("user")
    return SessionRead(
        authenticated=True,
        user_id=signed_in.user_id,
        email=signed_in.email or payload.email,
        user=user,
        message=cart_session.pop_notice(),
    )


@router.post("/logout", response_model=SessionRead)
async def logout(
    response: Response,
    identity: SessionIdentity = Depends(get_identity),
    client: BackendClient = Depends(get_backend_client),
    registry: CartSessionRegistry = Depends(get_registry),
):
    """
    Sign out: backend logout, drop the JWT cookie, reset the cart.
    """
    if identity.is_authenticated:
        await service.logout(client)

    response.delete_cookie(settings.JWT_COOKIE_NAME)

    cookies = {
        k: v for k, v in identity.cookies.items() if k != settings.JWT_COOKIE_NAME
    }
    guest = SessionIdentity(session_id=identity.session_id, cookies=cookies)
    await registry.resolve(guest)
    return SessionRead(authenticated=False)


@router.get("/me", response_model=SessionRead)
async def read_me(
    identity: SessionIdentity = Depends(get_identity),
    client: BackendClient = Depends(get_backend_client),
):
    """
    Return the caller's identity; signed-in users also get their
    backend profile.
    """
    if not identity.is_authenticated:
        return SessionRead(authenticated=False)

    return SessionRead(
        authenticated=True,
        user_id=identity.user_id,
        email=identity.email,
        user=await service.get_me(client),
    )
