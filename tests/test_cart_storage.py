# mypy: ignore-errors
import threading

import pytest
from sqlmodel import Session

from app.core.http_client import ApiError
from app.repositories.local_storage_repo import LocalStorageRepository
from app.schemas.cart import Cart, CartItem
from app.services.cart_gateway import RemoteCartGateway
from app.services.cart_storage import LocalCartStorage, RemoteCartStorage
from conftest import snapshot


def make_cart(*lines: tuple[str, int]) -> Cart:
    return Cart(items=[CartItem(product=snapshot(pid), quantity=qty) for pid, qty in lines])


# ---- remote ----


@pytest.mark.asyncio
async def test_fresh_remote_cart_is_created_with_adds_only(fake_backend, backend_client) -> None:
    storage = RemoteCartStorage(RemoteCartGateway(backend_client))

    await storage.save(make_cart(("p1", 2), ("p2", 1)), Cart())

    assert fake_backend.methods == [
        ("GET", "/cart"),
        ("POST", "/cart/items"),
        ("POST", "/cart/items"),
    ]
    assert fake_backend.calls[1][2] == {"productId": "p1", "quantity": 2}
    assert fake_backend.cart == {"p1": 2, "p2": 1}


@pytest.mark.asyncio
async def test_existing_cart_updates_then_adds_on_miss(fake_backend, backend_client) -> None:
    fake_backend.cart = {"p1": 1}
    storage = RemoteCartStorage(RemoteCartGateway(backend_client))

    await storage.save(make_cart(("p1", 3), ("p2", 1)), make_cart(("p1", 1)))

    assert fake_backend.methods == [
        ("GET", "/cart"),
        ("PATCH", "/cart/items/p1"),
        ("PATCH", "/cart/items/p2"),
        ("POST", "/cart/items"),
    ]
    assert fake_backend.cart == {"p1": 3, "p2": 1}


@pytest.mark.asyncio
async def test_items_dropped_from_candidate_are_deleted(fake_backend, backend_client) -> None:
    fake_backend.cart = {"p1": 2, "p2": 1}
    storage = RemoteCartStorage(RemoteCartGateway(backend_client))

    await storage.save(make_cart(("p1", 2)), make_cart(("p1", 2), ("p2", 1)))

    assert ("DELETE", "/cart/items/p2") in fake_backend.methods
    assert fake_backend.cart == {"p1": 2}


@pytest.mark.asyncio
async def test_other_update_errors_propagate(fake_backend, backend_client) -> None:
    fake_backend.cart = {"p1": 1}
    fake_backend.fail[("PATCH", "/cart/items/p1")] = 500
    storage = RemoteCartStorage(RemoteCartGateway(backend_client))

    with pytest.raises(ApiError) as exc:
        await storage.save(make_cart(("p1", 2)), make_cart(("p1", 1)))

    assert exc.value.status_code == 500
    assert exc.value.message == "Backend exploded"
    assert ("POST", "/cart/items") not in fake_backend.methods


@pytest.mark.asyncio
async def test_existence_check_failure_other_than_404_propagates(fake_backend, backend_client) -> None:
    fake_backend.fail[("GET", "/cart")] = 503
    storage = RemoteCartStorage(RemoteCartGateway(backend_client))

    with pytest.raises(ApiError):
        await storage.save(make_cart(("p1", 1)), Cart())

    assert fake_backend.methods == [("GET", "/cart")]


@pytest.mark.asyncio
async def test_remote_load_and_clear(fake_backend, backend_client) -> None:
    fake_backend.cart = {"p1": 2, "p3": 2}
    storage = RemoteCartStorage(RemoteCartGateway(backend_client))

    cart = await storage.load()
    assert cart.total_items == 4
    assert cart.total_price == 311

    await storage.clear()
    assert fake_backend.cart == {}


# ---- local ----


@pytest.mark.asyncio
async def test_local_roundtrip_and_clear(engine) -> None:
    storage = LocalCartStorage(engine, namespace="sid-1")
    assert await storage.load() is None

    cart = make_cart(("p1", 1), ("p2", 2))
    await storage.save(cart)
    await storage.save(make_cart(("p1", 4)))

    loaded = await storage.load()
    assert [(i.product_id, i.quantity) for i in loaded.items] == [("p1", 4)]

    await storage.clear()
    assert await storage.load() is None


@pytest.mark.asyncio
async def test_local_snapshots_are_scoped_per_session(engine) -> None:
    await LocalCartStorage(engine, namespace="a").save(make_cart(("p1", 1)))
    assert await LocalCartStorage(engine, namespace="b").load() is None


@pytest.mark.asyncio
async def test_unreadable_snapshot_counts_as_empty(engine) -> None:
    with Session(engine) as session:
        LocalStorageRepository().set_item(session, "sid-1", "cart", "{not json")

    assert await LocalCartStorage(engine, namespace="sid-1").load() is None


class ThreadRecordingRepository(LocalStorageRepository):
    def __init__(self):
        self.threads: set[int] = set()

    def get_item(self, session, namespace, key):
        self.threads.add(threading.get_ident())
        return super().get_item(session, namespace, key)

    def set_item(self, session, namespace, key, value):
        self.threads.add(threading.get_ident())
        super().set_item(session, namespace, key, value)

    def remove_item(self, session, namespace, key):
        self.threads.add(threading.get_ident())
        super().remove_item(session, namespace, key)


@pytest.mark.asyncio
async def test_local_database_calls_stay_off_the_event_loop(engine) -> None:
    repo = ThreadRecordingRepository()
    storage = LocalCartStorage(engine, namespace="sid-1", repo=repo)

    await storage.save(make_cart(("p1", 1)))
    await storage.load()
    await storage.clear()

    assert len(repo.threads) >= 1
    assert threading.get_ident() not in repo.threads
