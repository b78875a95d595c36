# app/services/cart_gateway.py
from typing import Any

from app.core.http_client import BackendClient


class RemoteCartGateway:
    """
    HTTP calls against the backend cart API.

    One method per endpoint, no retries. Failures surface as ApiError
    from the BackendClient.
    """

    def __init__(self, client: BackendClient):
        self.client = client

    async def get_cart(self) -> Any:
        return await self.client.request("/cart", "GET")

    async def add_item(self, product_id: str, quantity: int) -> Any:
        return await self.client.request(
            "/cart/items", "POST", {"productId": product_id, "quantity": quantity}
        )

    async def update_item(self, product_id: str, quantity: int) -> Any:
        return await self.client.request(
            f"/cart/items/{product_id}", "PATCH", {"quantity": quantity}
        )

    async def remove_item(self, product_id: str) -> Any:
        return await self.client.request(f"/cart/items/{product_id}", "DELETE")

    async def clear_cart(self) -> Any:
        return await self.client.request("/cart", "DELETE")
