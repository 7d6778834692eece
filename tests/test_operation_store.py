import asyncio

from storefront.offline.operation_store import OperationStore


def test_fifo_order_and_payload(open_offline):
    async def go():
        engine, sf = await open_offline()
        store = OperationStore(sf)
        first = await store.add("post", "http://shop.test/api/cart/add", {"X-User-Id": "1"}, '{"productId": 1}')
        second = await store.add("DELETE", "http://shop.test/api/cart/clear")
        ops = await store.pending()
        await engine.dispose()
        return first, second, ops

    first, second, ops = asyncio.run(go())
    assert first < second
    assert [op.id for op in ops] == [first, second]
    assert ops[0].method == "POST"
    assert ops[0].headers == {"X-User-Id": "1"}
    assert ops[0].body == '{"productId": 1}'
    assert ops[0].timestamp > 0
    assert ops[1].body is None
    assert ops[1].headers == {}


def test_survives_restart(open_offline):
    async def go():
        engine, sf = await open_offline()
        await OperationStore(sf).add("POST", "http://shop.test/api/cart/add", body="{}")
        await engine.dispose()

        # nowy proces, ten sam plik
        engine, sf = await open_offline()
        ops = await OperationStore(sf).pending()
        await engine.dispose()
        return ops

    ops = asyncio.run(go())
    assert [(op.method, op.url) for op in ops] == [("POST", "http://shop.test/api/cart/add")]


def test_delete_is_single_and_ids_are_not_reused(open_offline):
    async def go():
        engine, sf = await open_offline()
        store = OperationStore(sf)
        a = await store.add("POST", "http://shop.test/a")
        b = await store.add("POST", "http://shop.test/b")
        deleted = await store.delete(b)
        deleted_again = await store.delete(b)
        c = await store.add("POST", "http://shop.test/c")
        result = (a, b, c, deleted, deleted_again, await store.get(b), await store.count())
        await engine.dispose()
        return result

    a, b, c, deleted, deleted_again, gone, count = asyncio.run(go())
    assert deleted is True
    assert deleted_again is False
    assert gone is None
    assert c > b > a
    assert count == 2
