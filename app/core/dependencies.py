# app/core/dependencies.py
from fastapi import Depends, Request

from app.core.auth import SessionIdentity, get_identity
from app.core.http_client import BackendClient
from app.services.session_service import CartSession, CartSessionRegistry


def get_registry(request: Request) -> CartSessionRegistry:
    """The per-process registry created in the app lifespan."""
    return request.app.state.cart_sessions


async def get_cart_session(
    identity: SessionIdentity = Depends(get_identity),
    registry: CartSessionRegistry = Depends(get_registry),
) -> CartSession:
    """
    Cart session of the caller, hydrated and in the right auth mode.
    """
    return await registry.resolve(identity)


def get_backend_client(
    request: Request,
    identity: SessionIdentity = Depends(get_identity),
) -> BackendClient:
    """
    Backend client carrying the caller's credentials (catalog, auth calls).
    """
    return BackendClient(request.app.state.http, identity.token, identity.cookies)
