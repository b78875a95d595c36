# app/schemas/product.py
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductSnapshot(BaseModel):
    """
    Denormalized copy of a catalog product, held inside a cart item.

    Only the fields the cart needs are kept; the catalog payload can carry
    many more (mrp, discount, stock, ...) which are dropped here.
    Serialized with the backend's `_id` key.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    name: str
    price: float = Field(ge=0)
    brand: str | None = None
    image: str | None = None

    @field_validator("id", "name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @classmethod
    def from_catalog(cls, data: dict[str, Any]) -> "ProductSnapshot":
        """
        Build a snapshot from a raw catalog product.

        The catalog is not consistent about a few keys:
          - id:    `_id` or `id`
          - price: `sellingPrice` wins over `price`
          - image: `thumbnail`, else the first of `images`
                   (plain URLs or {"url": ...} objects)
          - brand: plain string or a populated {"name": ...} object
        """
        images = data.get("images") or []
        image = data.get("thumbnail") or data.get("image")
        if not image and images:
            first = images[0]
            image = first.get("url") if isinstance(first, dict) else first

        price = data.get("sellingPrice")
        if price is None:
            price = data.get("price")

        brand = data.get("brand")
        if isinstance(brand, dict):
            brand = brand.get("name")

        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            name=data.get("name") or "",
            price=price,
            brand=brand,
            image=image,
        )
