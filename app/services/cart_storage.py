# app/services/cart_storage.py
import json
import logging
from typing import Protocol

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlmodel import Session

from app.core.config import get_settings
from app.core.http_client import ApiError
from app.repositories.local_storage_repo import LocalStorageRepository
from app.schemas.cart import Cart
from app.services.cart_gateway import RemoteCartGateway

settings = get_settings()

logger = logging.getLogger(__name__)

# Exact backend message for PATCH on a product that isn't in the cart.
ITEM_NOT_FOUND_MESSAGE = "Item not found in cart"


class CartStorage(Protocol):
    """
    Where the cart lives. The store only picks an implementation.
    """

    async def load(self) -> Cart | None: ...

    async def save(self, candidate: Cart, previous: Cart) -> None: ...

    async def clear(self) -> None: ...


class RemoteCartStorage:
    """
    Authenticated carts, persisted through the backend cart API.

    The backend has no bulk replace / upsert, so `save` reconciles the
    whole candidate item list with per-item calls:

      1. check GET /cart
         - 404 => no cart yet: add the first item (creates the cart),
           then add the rest; never PATCH a cart that doesn't exist
      2. PATCH every candidate item; on "Item not found in cart"
         fall back to POST for that item
      3. DELETE items that were in `previous` but not in `candidate`

    Any other error propagates unchanged.
    """

    def __init__(self, gateway: RemoteCartGateway):
        self.gateway = gateway

    async def load(self) -> Cart | None:
        """Server cart; None while the user has no cart yet (404)."""
        try:
            payload = await self.gateway.get_cart()
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return Cart.from_backend(payload)

    async def save(self, candidate: Cart, previous: Cart) -> None:
        try:
            await self.gateway.get_cart()
        except ApiError as e:
            if e.status_code != 404:
                raise
            await self._create(candidate)
            return

        for item in candidate.items:
            await self._upsert(item.product_id, item.quantity)

        for item in previous.items:
            if candidate.find(item.product_id) is None:
                await self.gateway.remove_item(item.product_id)

    async def clear(self) -> None:
        await self.gateway.clear_cart()

    async def _create(self, candidate: Cart) -> None:
        if not candidate.items:
            return
        first, *rest = candidate.items
        await self.gateway.add_item(first.product_id, first.quantity)
        for item in rest:
            await self.gateway.add_item(item.product_id, item.quantity)

    async def _upsert(self, product_id: str, quantity: int) -> None:
        try:
            await self.gateway.update_item(product_id, quantity)
        except ApiError as e:
            if e.message != ITEM_NOT_FOUND_MESSAGE:
                raise
            await self.gateway.add_item(product_id, quantity)


class LocalCartStorage:
    """
    Guest carts, kept as one JSON snapshot in the session key-value store.

    The database calls are blocking, so they run in the threadpool.
    """

    def __init__(
        self,
        engine: Engine,
        namespace: str,
        repo: LocalStorageRepository | None = None,
        key: str = settings.CART_STORAGE_KEY,
    ):
        self.engine = engine
        self.namespace = namespace
        self.repo = repo or LocalStorageRepository()
        self.key = key

    def _read(self) -> str | None:
        with Session(self.engine) as session:
            return self.repo.get_item(session, self.namespace, self.key)

    def _write(self, value: str) -> None:
        with Session(self.engine) as session:
            self.repo.set_item(session, self.namespace, self.key, value)

    def _delete(self) -> None:
        with Session(self.engine) as session:
            self.repo.remove_item(session, self.namespace, self.key)

    async def load(self) -> Cart | None:
        """
        Read the snapshot. Missing or unreadable => None (empty guest cart).
        """
        raw = await run_in_threadpool(self._read)
        if raw is None:
            return None
        try:
            return Cart.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Discarding unreadable cart snapshot for {self.namespace}: {e}")
            return None

    async def save(self, candidate: Cart, previous: Cart | None = None) -> None:
        # Single write: the whole snapshot is replaced.
        snapshot = candidate.model_copy(update={"loading": False}).to_snapshot()
        await run_in_threadpool(self._write, json.dumps(snapshot))

    async def clear(self) -> None:
        await run_in_threadpool(self._delete)
