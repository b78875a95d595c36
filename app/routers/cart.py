# app/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException, status

from app.core.auth import SessionIdentity, require_auth
from app.core.dependencies import get_backend_client, get_cart_session
from app.core.http_client import BackendClient
from app.core.result import Err, Ok
from app.schemas.cart import (
    CartItemAdd,
    CartItemUpdate,
    CartResponse,
    CheckoutResponse,
)
from app.services.cart_service import CartResult
from app.services.catalog_service import CatalogService
from app.services.session_service import CartSession

router = APIRouter(prefix="/cart", tags=["Cart"])


def _respond(result: CartResult) -> CartResponse:
    """
    Ok  => visible cart + notification
    Err => 502 with the notification as detail (the cart is unchanged)
    """
    match result:
        case Ok(change):
            return CartResponse(cart=change.cart, message=change.message)
        case Err(error):
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=error.message,
            )


@router.get("", response_model=CartResponse)
async def get_my_cart(cart_session: CartSession = Depends(get_cart_session)):
    """
    Current visible cart.

    Guests get their locally stored cart, signed-in users the server cart.
    Right after sign-in the message reports guest items that could not
    be merged, or that the server cart could not be loaded yet.
    """
    return CartResponse(
        cart=cart_session.store.state,
        message=cart_session.pop_notice(),
    )


@router.post("/items", response_model=CartResponse)
async def add_to_cart(
    payload: CartItemAdd,
    cart_session: CartSession = Depends(get_cart_session),
    client: BackendClient = Depends(get_backend_client),
):
    """
    Add a product to the cart.

    The product snapshot (name, price, brand, image) is taken from the
    catalog at the time of the call.
    """
    product = await CatalogService(client).get_snapshot(payload.product_id)
    return _respond(await cart_session.store.add_item(product, payload.quantity))


@router.patch("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str,
    payload: CartItemUpdate,
    cart_session: CartSession = Depends(get_cart_session),
):
    """
    Set the quantity of a product. A quantity below 1 removes it.
    """
    return _respond(await cart_session.store.update_item(product_id, payload.quantity))


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: str,
    cart_session: CartSession = Depends(get_cart_session),
):
    """
    Remove a product from the cart (no-op if absent).
    """
    return _respond(await cart_session.store.remove_item(product_id))


@router.delete("", response_model=CartResponse)
async def clear_cart(cart_session: CartSession = Depends(get_cart_session)):
    """
    Clear the entire cart.
    """
    return _respond(await cart_session.store.clear())


@router.post("/refresh", response_model=CartResponse)
async def refresh_cart(
    _: SessionIdentity = Depends(require_auth),
    cart_session: CartSession = Depends(get_cart_session),
):
    """
    Reload the cart from the server (signed-in users only).
    """
    return _respond(await cart_session.store.fetch())


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    _: SessionIdentity = Depends(require_auth),
    cart_session: CartSession = Depends(get_cart_session),
):
    """
    Place the order for the current cart.

    Payment is handled elsewhere; the storefront only requires a
    non-empty cart and empties it once the order is accepted.
    """
    cart = cart_session.store.state
    if not cart.items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="There are no items in your cart to checkout.",
        )

    match await cart_session.store.clear():
        case Err(_):
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to process your order. Please try again.",
            )

    return CheckoutResponse(
        message="Order placed successfully!",
        total_items=cart.total_items,
        total_price=cart.total_price,
    )
