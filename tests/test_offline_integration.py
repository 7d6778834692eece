"""
Klient offline podpiety do prawdziwej aplikacji FastAPI przez httpx.ASGITransport.
"""

import asyncio
import json

import httpx
from sqlalchemy import select

from storefront.data.models import CartItemModel, OrderModel, ProductModel
from storefront.offline.interceptor import CacheConfig
from storefront.offline.mutation_queue import SYNC_TAG, MutationQueue
from storefront.offline.operation_store import OperationStore
from storefront.offline.runtime import start_offline_runtime

BASE = "http://shop.test"
ADDRESS = {
    "firstName": "Anna",
    "lastName": "Nowak",
    "addressLine1": "ul. Prosta 1",
    "city": "Warszawa",
    "state": "mazowieckie",
    "postalCode": "00-001",
}
CONFIG = CacheConfig(shell_assets=["/", "/offline.html"])


def asgi_client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE)


def test_queued_mutations_replay_in_order_against_server(app, make_user, make_product, open_offline, SessionTesting):
    make_user(1)
    p = make_product(stock=5)
    headers = {"Content-Type": "application/json", "X-User-Id": "1"}

    async def go():
        engine, sf = await open_offline()
        network = asgi_client(app)
        queue = MutationQueue(OperationStore(sf), network)
        await queue.enqueue("POST", f"{BASE}/api/cart/add", headers, json.dumps({"productId": p.id, "quantity": 1}))
        await queue.enqueue("PUT", f"{BASE}/api/cart/update/1", headers, json.dumps({"quantity": 3}))
        report = await queue.drain()
        await network.aclose()
        await engine.dispose()
        return report

    report = asyncio.run(go())

    assert len(report.replayed) == 2
    with SessionTesting() as s:
        item = s.execute(select(CartItemModel)).scalar_one()
        assert (item.id, item.product_id, item.quantity) == (1, p.id, 3)


def test_offline_cart_changes_sync_when_back_online(app, make_user, make_product, offline_db_url, SessionTesting):
    make_user(1)
    p = make_product(price="10.00", stock=5)

    async def go():
        runtime = await start_offline_runtime(offline_db_url, asgi_client(app), CONFIG, online=False)
        cart = runtime.cart_client(1)

        added = await cart.add_to_cart(p.id, 2)
        blocked = await cart.checkout(ADDRESS)
        queued = await runtime.store.count()

        runtime.connectivity.set_online(True)
        await runtime.connectivity.wait_idle()
        await runtime.sync.wait_idle()

        loaded = await cart.load_cart()
        remaining = await runtime.store.count()
        placed = await cart.checkout(ADDRESS)
        await runtime.close()
        return added, blocked, queued, loaded, remaining, placed

    added, blocked, queued, loaded, remaining, placed = asyncio.run(go())

    assert added.success and added.queued
    assert added.message == "Item will be added when you're back online"
    assert not blocked.success
    assert queued == 1

    assert remaining == 0
    assert loaded["count"] == 1
    assert loaded["items"][0]["quantity"] == 2

    assert placed.success
    assert placed.data["totalAmount"] == "20.00"
    with SessionTesting() as s:
        assert s.get(ProductModel, p.id).stock_quantity == 3
        assert s.execute(select(OrderModel)).scalar_one().order_number == placed.data["orderNumber"]


def test_network_drop_while_flag_says_online_is_retried_by_sync(server, offline_db_url):
    attempts = []

    def flaky(request):
        attempts.append(1)
        # pierwsza proba klienta i pierwszy drain trafiaja na zerwane polaczenie
        if len(attempts) <= 2:
            raise httpx.ConnectError("connection reset", request=request)
        return httpx.Response(200, json={"message": "Item added to cart"})

    server.route("POST", "/api/cart/add", flaky)

    async def go():
        runtime = await start_offline_runtime(offline_db_url, server.client(), CONFIG, online=True, sync_retry_wait=0.01)
        result = await runtime.cart_client(1).add_to_cart(7)
        await runtime.sync.wait_idle()
        remaining = await runtime.store.count()
        pending = runtime.sync.pending_tags
        await runtime.close()
        return result, remaining, pending

    result, remaining, pending = asyncio.run(go())
    assert result.queued
    assert len(attempts) == 3
    assert remaining == 0
    assert pending == set()


def test_sync_tag_survives_outage_until_reconnect(server, offline_db_url):
    server.route("POST", "/api/cart/add", json={"message": "Item added to cart"})

    async def go():
        runtime = await start_offline_runtime(offline_db_url, server.client(), CONFIG, online=True, sync_retry_wait=0.01)
        server.offline = True
        result = await runtime.cart_client(1).add_to_cart(7)
        await runtime.sync.wait_idle()
        during = (await runtime.store.count(), runtime.sync.pending_tags)

        server.offline = False
        runtime.connectivity.set_online(False)
        runtime.connectivity.set_online(True)
        await runtime.connectivity.wait_idle()
        await runtime.sync.wait_idle()
        after = (await runtime.store.count(), runtime.sync.pending_tags)
        await runtime.close()
        return result, during, after

    result, during, after = asyncio.run(go())
    assert result.queued
    assert during == (1, {SYNC_TAG})
    assert after == (0, set())
    assert server.calls.count(("POST", "/api/cart/add")) == 1


def test_server_rejection_is_reported_not_queued(server, offline_db_url):
    server.route("POST", "/api/cart/add", 400, json={"detail": "Insufficient stock for Mouse"})

    async def go():
        runtime = await start_offline_runtime(offline_db_url, server.client(), CONFIG, online=True)
        result = await runtime.cart_client(1).add_to_cart(7, 10)
        queued = await runtime.store.count()
        await runtime.close()
        return result, queued

    result, queued = asyncio.run(go())
    assert not result.success
    assert not result.queued
    assert result.message == "Insufficient stock for Mouse"
    assert queued == 0
