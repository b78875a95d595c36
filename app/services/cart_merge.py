# app/services/cart_merge.py
import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.result import Err
from app.schemas.cart import Cart, CartItem
from app.services.cart_service import CartStore
from app.services.cart_storage import LocalCartStorage

settings = get_settings()

logger = logging.getLogger(__name__)


@dataclass
class MergeReport:
    """Outcome of draining a guest cart into the signed-in cart."""

    merged: list[CartItem] = field(default_factory=list)
    failed: list[CartItem] = field(default_factory=list)

    @property
    def message(self) -> str | None:
        if not self.failed:
            return None
        names = ", ".join(item.product.name for item in self.failed)
        return f"Some items could not be added to your cart: {names}"


class CartMergeController:
    """
    Moves the guest cart into the remote cart when a session signs in.

    Flow (once per signed-out -> signed-in transition):
      1. read the guest snapshot; absent/empty => nothing to do
      2. add_item() each guest line on the signed-in store, one after
         the other (parallel adds would race on the same server cart)
      3. drop the guest snapshot

    Best effort: a failed line is logged and reported, the remaining lines
    are still submitted and nothing already merged is rolled back.
    With CART_MERGE_KEEP_FAILED the failed lines are written back to the
    guest snapshot instead of being lost.
    """

    def __init__(
        self,
        store: CartStore,
        guest_storage: LocalCartStorage,
        keep_failed: bool = settings.CART_MERGE_KEEP_FAILED,
    ):
        self.store = store
        self.guest_storage = guest_storage
        self.keep_failed = keep_failed
        self._authenticated = False

    async def on_auth_change(
        self, is_authenticated: bool, user_id: str | None
    ) -> MergeReport | None:
        """
        Feed every auth state observation here; merges only on sign-in.
        """
        signed_in = is_authenticated and bool(user_id)
        was_authenticated = self._authenticated
        self._authenticated = signed_in

        if signed_in and not was_authenticated:
            return await self.merge()
        return None

    async def merge(self) -> MergeReport | None:
        try:
            guest_cart = await self.guest_storage.load()
        except SQLAlchemyError as e:
            # Left in place: the snapshot is merged on the next sign-in.
            logger.error(f"Could not read guest cart {self.guest_storage.namespace}: {e}")
            return None
        if guest_cart is None or not guest_cart.items:
            return None

        report = MergeReport()
        for item in guest_cart.items:
            result = await self.store.add_item(item.product, item.quantity)
            if isinstance(result, Err):
                logger.error(
                    f"Error merging cart item {item.product_id}: {result.error.message}"
                )
                report.failed.append(item)
            else:
                report.merged.append(item)

        try:
            if report.failed and self.keep_failed:
                await self.guest_storage.save(Cart(items=report.failed))
            else:
                await self.guest_storage.clear()
        except SQLAlchemyError as e:
            logger.error(f"Could not drop guest cart {self.guest_storage.namespace}: {e}")

        logger.info(
            f"Guest cart merged: {len(report.merged)} ok, {len(report.failed)} failed"
        )
        return report
