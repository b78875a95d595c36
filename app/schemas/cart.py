# app/schemas/cart.py
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from app.schemas.product import ProductSnapshot


class CartItem(BaseModel):
    """
    One cart line: a product snapshot and a positive quantity.
    """

    product: ProductSnapshot
    quantity: int = Field(gt=0)

    @property
    def product_id(self) -> str:
        return self.product.id


class Cart(BaseModel):
    """
    In-memory cart.

    Totals are computed from `items` on every access/serialization and are
    never stored. Serialized shape (also the guest snapshot format):

        {"items": [...], "totalItems": 3, "totalPrice": 300.0, "loading": false}
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items: list[CartItem] = Field(default_factory=list)
    loading: bool = False

    @model_validator(mode="after")
    def merge_duplicate_products(self) -> "Cart":
        # One line per product: fold repeats into the first occurrence.
        merged: dict[str, CartItem] = {}
        for item in self.items:
            existing = merged.get(item.product_id)
            if existing is None:
                merged[item.product_id] = item
            else:
                merged[item.product_id] = existing.model_copy(
                    update={"quantity": existing.quantity + item.quantity}
                )
        if len(merged) != len(self.items):
            self.items = list(merged.values())
        return self

    @computed_field(alias="totalItems")
    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @computed_field(alias="totalPrice")
    @property
    def total_price(self) -> float:
        return sum(item.product.price * item.quantity for item in self.items)

    def find(self, product_id: str) -> CartItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def to_snapshot(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_backend(cls, payload: Any) -> "Cart":
        """
        Parse a GET /cart response.

        The backend may wrap the cart in `data`; item products come
        populated from the catalog and are reduced to snapshots.
        Server-sent totals are ignored and recomputed.
        """
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        payload = payload or {}

        items = []
        for raw in payload.get("items") or []:
            product = raw.get("product")
            if isinstance(product, dict):
                product = ProductSnapshot.from_catalog(product)
            items.append({"product": product, "quantity": raw.get("quantity")})

        return cls(items=items)


# ---- request / response models ----


class CartItemAdd(BaseModel):
    """
    Payload for adding to cart. The snapshot is resolved from the catalog.
    """

    product_id: str = Field(min_length=1)
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(BaseModel):
    """
    Absolute quantity. Anything below 1 removes the item.
    """

    quantity: int


class CartResponse(BaseModel):
    """
    Visible cart plus the notification produced by the operation, if any.
    """

    cart: Cart
    message: str | None = None


class CheckoutResponse(BaseModel):
    message: str
    total_items: int
    total_price: float
