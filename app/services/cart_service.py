# app/services/cart_service.py
import asyncio
import logging
from dataclasses import dataclass
from typing import TypeAlias

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.core.http_client import ApiError
from app.core.result import Err, Ok, Result
from app.schemas.cart import Cart
from app.schemas.product import ProductSnapshot
from app.services import cart_reducer
from app.services.cart_storage import CartStorage

logger = logging.getLogger(__name__)

# Everything a storage call may raise that we turn into a failed operation.
STORAGE_ERRORS = (ApiError, SQLAlchemyError, ValidationError)


class CartOperationError(Exception):
    """
    A cart operation failed; `message` is the user-facing notification.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class CartChange:
    """Committed cart and the notification for the user."""

    cart: Cart
    message: str | None = None


CartResult: TypeAlias = Result[CartChange, CartOperationError]


class CartStore:
    """
    The visible cart of one browser session.

    Responsibilities:
      - compute candidate carts (cart_reducer)
      - persist them through the storage picked for the session mode
        (RemoteCartStorage when signed in, LocalCartStorage for guests)
      - commit on success, keep the previous cart on failure
      - one notification per operation, returned in the Result

    Operations on the same store run one at a time (asyncio.Lock), so two
    quick edits are applied in the order they were issued. `loading` is
    still exposed so the UI can disable controls while a call is pending.
    """

    def __init__(self, storage: CartStorage, authenticated: bool = False):
        self.storage = storage
        self.authenticated = authenticated
        self.state = Cart()
        self._lock = asyncio.Lock()

    @property
    def loading(self) -> bool:
        return self.state.loading

    def use_storage(self, storage: CartStorage, authenticated: bool) -> None:
        """Switch persistence mode (login / logout)."""
        self.storage = storage
        self.authenticated = authenticated

    # ---- internal helpers ----

    def _set_loading(self, loading: bool) -> None:
        self.state = self.state.model_copy(update={"loading": loading})

    async def _persist(
        self,
        candidate: Cart,
        success_message: str,
        failure_message: str,
    ) -> CartResult:
        previous = self.state.model_copy(update={"loading": False})
        self._set_loading(True)
        try:
            await self.storage.save(candidate, previous)
        except STORAGE_ERRORS as e:
            logger.error(f"{failure_message}: {e}")
            self.state = previous
            return Err(CartOperationError(failure_message))

        self.state = candidate.model_copy(update={"loading": False})
        return Ok(CartChange(self.state, success_message))

    async def _remove(self, product_id: str) -> CartResult:
        if self.state.find(product_id) is None:
            return Ok(CartChange(self.state))
        candidate = cart_reducer.remove_item(self.state, product_id)
        return await self._persist(
            candidate, "Item removed from cart", "Failed to remove item"
        )

    # ---- public operations ----

    async def add_item(self, product: ProductSnapshot, quantity: int = 1) -> CartResult:
        """
        Add `quantity` of `product`; an existing line is incremented.
        """
        async with self._lock:
            if quantity < 1:
                return Err(CartOperationError("Failed to add to cart"))
            candidate = cart_reducer.add_item(self.state, product, quantity)
            return await self._persist(
                candidate, "Added to cart!", "Failed to add to cart"
            )

    async def update_item(self, product_id: str, quantity: int) -> CartResult:
        """
        Set the absolute quantity of a line. Below 1 removes the line.
        Unknown products are left alone.
        """
        async with self._lock:
            if quantity < 1:
                return await self._remove(product_id)
            if self.state.find(product_id) is None:
                return Ok(CartChange(self.state))
            candidate = cart_reducer.set_quantity(self.state, product_id, quantity)
            return await self._persist(
                candidate, "Cart updated", "Failed to update cart"
            )

    async def remove_item(self, product_id: str) -> CartResult:
        """
        Drop a line. Removing a product that isn't in the cart is a no-op.
        """
        async with self._lock:
            return await self._remove(product_id)

    async def clear(self) -> CartResult:
        """
        Empty the cart: remote DELETE /cart, or drop the guest snapshot.
        """
        async with self._lock:
            previous = self.state.model_copy(update={"loading": False})
            self._set_loading(True)
            try:
                await self.storage.clear()
            except STORAGE_ERRORS as e:
                logger.error(f"Failed to clear cart: {e}")
                self.state = previous
                return Err(CartOperationError("Failed to clear cart"))

            self.state = cart_reducer.empty()
            return Ok(CartChange(self.state, "Cart cleared"))

    async def fetch(self) -> CartResult:
        """
        Replace the visible cart with the server's (signed-in sessions only).
        """
        async with self._lock:
            if not self.authenticated:
                return Err(CartOperationError("Please log in to load your cart"))
            return await self._fetch()

    async def _fetch(self) -> CartResult:
        self._set_loading(True)
        try:
            cart = await self.storage.load()
        except STORAGE_ERRORS as e:
            logger.error(f"Error fetching cart: {e}")
            self._set_loading(False)
            return Err(CartOperationError("Failed to load cart"))

        self.state = cart or cart_reducer.empty()
        return Ok(CartChange(self.state))

    async def hydrate(self) -> CartResult:
        """
        Session start: server cart when signed in, guest snapshot otherwise.
        """
        async with self._lock:
            if self.authenticated:
                return await self._fetch()

            self._set_loading(True)
            try:
                cart = await self.storage.load()
            except STORAGE_ERRORS as e:
                logger.error(f"Error reading guest cart: {e}")
                cart = None

            self.state = (cart or cart_reducer.empty()).model_copy(update={"loading": False})
            return Ok(CartChange(self.state))

    def reset(self) -> None:
        """Logout: forget the visible cart without touching storage."""
        self.state = cart_reducer.empty()
