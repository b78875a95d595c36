# app/services/catalog_service.py
from typing import Any

from fastapi import HTTPException, status
from pydantic import ValidationError

from app.core.http_client import ApiError, BackendClient
from app.schemas.product import ProductSnapshot


def _unwrap(payload: Any, key: str) -> Any:
    """
    Backend responses look like {"status": ..., "data": {key: ...}};
    return the inner value, or the payload itself when it isn't wrapped.
    """
    if isinstance(payload, dict):
        data = payload.get("data", payload)
        if isinstance(data, dict) and key in data:
            return data[key]
        return data
    return payload


class CatalogService:
    """
    Read-only access to the backend product catalog.

    Responsibilities:
      - pass catalog queries through to the backend
      - turn a product id into a ProductSnapshot for the cart
      - map backend failures to HTTP errors for the routers
    """

    def __init__(self, client: BackendClient):
        self.client = client

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        try:
            return await self.client.request(endpoint, "GET", params=params)
        except ApiError as e:
            if e.status_code == 404:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Product not found",
                )
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=e.message,
            )

    async def list_products(self, params: dict[str, Any] | None = None) -> Any:
        return await self._get("/products", params=params or None)

    async def search_products(self, query: str) -> Any:
        return await self._get("/products/search", params={"q": query})

    async def list_categories(self) -> Any:
        return await self._get("/products/categories")

    async def get_product(self, id_or_slug: str) -> Any:
        return await self._get(f"/products/{id_or_slug}")

    async def get_snapshot(self, product_id: str) -> ProductSnapshot:
        """
        Fetch a product and reduce it to what the cart keeps.

        Raises:
            HTTPException(404): unknown product
            HTTPException(502): catalog unavailable or unusable payload
        """
        product = _unwrap(await self.get_product(product_id), "product")
        if not isinstance(product, dict):
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Unexpected product payload",
            )
        try:
            return ProductSnapshot.from_catalog(product)
        except ValidationError:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Product is missing id, name or price",
            )
