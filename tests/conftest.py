# mypy: ignore-errors
import json
import os
import re

# Settings are cached on first import: point the local store at an
# in-memory database before anything from `app` is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest

from app.core.config import get_settings
from app.core.http_client import BackendClient
from app.database import build_engine, create_db_and_tables
from app.models import local_storage as _local_storage_models  # noqa: F401
from app.schemas.product import ProductSnapshot

settings = get_settings()

CATALOG = {
    "p1": {"_id": "p1", "name": "Paracetamol 500mg", "price": 100, "brand": "Cipla",
           "images": ["https://cdn.example.com/p1.png"]},
    "p2": {"_id": "p2", "name": "Vitamin C", "price": 120, "sellingPrice": 90,
           "brand": {"name": "HealthKart"}, "thumbnail": "https://cdn.example.com/p2.png"},
    "p3": {"_id": "p3", "name": "Cough Syrup", "price": 55.5},
}

ITEM_PATH = re.compile(r"^/cart/items/(?P<pid>[^/]+)$")
PRODUCT_PATH = re.compile(r"^/products/(?P<pid>[^/]+)$")


class FakeBackend:
    """
    In-memory stand-in for the pharmacy backend cart/catalog/users API.

    - `cart` is None until the first POST /cart/items (GET => 404)
    - `fail` maps (method, path) to a status code to answer with
    - `calls` records every (method, path, body)
    """

    def __init__(self):
        self.cart: dict[str, int] | None = None
        self.calls: list[tuple[str, str, dict | None]] = []
        self.fail: dict[tuple[str, str], int] = {}
        self.token: str | None = None
        self.user = {"_id": "u1", "name": "Asha", "email": "asha@example.com"}

    @property
    def methods(self) -> list[tuple[str, str]]:
        return [(m, p) for m, p, _ in self.calls]

    def _reply(self, status: int, body=None) -> httpx.Response:
        if body is None and status == 204:
            return httpx.Response(204)
        return httpx.Response(status, json=body)

    def _cart_body(self) -> dict:
        items = [
            {"product": CATALOG[pid], "quantity": qty} for pid, qty in self.cart.items()
        ]
        return {
            "status": "success",
            "data": {
                "items": items,
                "totalItems": sum(self.cart.values()),
                "totalPrice": 0,
            },
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        prefix = settings.BACKEND_API_PREFIX
        path = request.url.path
        if path.startswith(prefix):
            path = path[len(prefix):]
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))

        if (request.method, path) in self.fail:
            return self._reply(self.fail[(request.method, path)], {"message": "Backend exploded"})

        if path == "/cart":
            if request.method == "GET":
                if self.cart is None:
                    return self._reply(404, {"message": "Cart not found"})
                return self._reply(200, self._cart_body())
            if request.method == "DELETE":
                self.cart = {}
                return self._reply(204)

        if path == "/cart/items" and request.method == "POST":
            self.cart = self.cart if self.cart is not None else {}
            pid = body["productId"]
            self.cart[pid] = self.cart.get(pid, 0) + body["quantity"]
            return self._reply(201, self._cart_body())

        match = ITEM_PATH.match(path)
        if match:
            pid = match["pid"]
            if self.cart is None or pid not in self.cart:
                return self._reply(404, {"message": "Item not found in cart"})
            if request.method == "PATCH":
                self.cart[pid] = body["quantity"]
                return self._reply(200, self._cart_body())
            if request.method == "DELETE":
                del self.cart[pid]
                return self._reply(204)

        if path == "/users/login" and request.method == "POST":
            if body["password"] != "secret":
                return self._reply(401, {"message": "Incorrect email or password"})
            return self._reply(200, {"status": "success", "token": self.token,
                                     "data": {"user": self.user}})
        if path == "/users/logout":
            return self._reply(200, {"status": "success"})
        if path == "/users/me":
            return self._reply(200, {"status": "success", "data": {"user": self.user}})

        if path == "/products" and request.method == "GET":
            return self._reply(200, {"status": "success", "data": {"products": list(CATALOG.values())}})
        match = PRODUCT_PATH.match(path)
        if match and request.method == "GET":
            product = CATALOG.get(match["pid"])
            if product is None:
                return self._reply(404, {"message": "No product found with that ID"})
            return self._reply(200, {"status": "success", "data": {"product": product}})

        return self._reply(404, {"message": f"Can't find {path} on this server"})


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http(fake_backend: FakeBackend) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.backend_base_url,
        transport=httpx.MockTransport(fake_backend.handler),
    )


@pytest.fixture
def backend_client(http: httpx.AsyncClient) -> BackendClient:
    return BackendClient(http, token="test-token")


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


def snapshot(pid: str) -> ProductSnapshot:
    return ProductSnapshot.from_catalog(CATALOG[pid])
