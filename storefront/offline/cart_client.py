# storefront/offline/cart_client.py
import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from storefront.offline.interceptor import Interceptor, is_offline_response
from storefront.offline.mutation_queue import MutationQueue
from storefront.offline.sync import Connectivity
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class MutationResult:
    success: bool
    message: str = ""
    queued: bool = False
    data: dict[str, Any] = field(default_factory=dict)


def _json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_message(response: httpx.Response, default: str) -> str:
    detail = _json(response).get("detail")
    if isinstance(detail, dict):
        return detail.get("message", default)
    if isinstance(detail, str):
        return detail
    return default


class CartClient:
    """
    API koszyka dla aplikacji. Offline (albo gdy interceptor zwroci payload
    offline) mutacja trafia do kolejki, a wolajacy dostaje optymistyczne
    "zastosuje sie po powrocie online". Checkout zawsze wymaga polaczenia.
    """

    def __init__(self, interceptor: Interceptor, queue: MutationQueue, connectivity: Connectivity, user_id: int):
        self.interceptor = interceptor
        self.queue = queue
        self.connectivity = connectivity
        self.user_id = user_id

    @property
    def headers(self) -> dict:
        return {"Content-Type": "application/json", "X-User-Id": str(self.user_id)}

    async def load_cart(self) -> dict:
        response = await self.interceptor.request("GET", "/api/cart", headers=self.headers)
        data = _json(response)
        if response.status_code != 200:
            return {"items": [], "total": "0.00", "count": 0, "offline": bool(data.get("offline"))}
        return data

    async def add_to_cart(self, product_id: int, quantity: int = 1) -> MutationResult:
        return await self._mutate(
            "POST",
            "/api/cart/add",
            {"productId": product_id, "quantity": quantity},
            done="Item added to cart",
            deferred="Item will be added when you're back online",
            failed="Failed to add item to cart",
        )

    async def update_cart_item(self, cart_item_id: int, quantity: int) -> MutationResult:
        return await self._mutate(
            "PUT",
            f"/api/cart/update/{cart_item_id}",
            {"quantity": quantity},
            done="Cart updated",
            deferred="Cart will be updated when you're back online",
            failed="Failed to update cart",
        )

    async def remove_from_cart(self, cart_item_id: int) -> MutationResult:
        return await self._mutate(
            "DELETE",
            f"/api/cart/remove/{cart_item_id}",
            None,
            done="Item removed from cart",
            deferred="Item will be removed when you're back online",
            failed="Failed to remove item",
        )

    async def clear_cart(self) -> MutationResult:
        return await self._mutate(
            "DELETE",
            "/api/cart/clear",
            None,
            done="Cart cleared",
            deferred="Cart will be cleared when you're back online",
            failed="Failed to clear cart",
        )

    async def checkout(self, shipping_address: dict, billing_address: dict | None = None) -> MutationResult:
        if not self.connectivity.online:
            return MutationResult(False, "Checkout requires an internet connection")

        payload = {"shippingAddress": shipping_address}
        if billing_address:
            payload["billingAddress"] = billing_address
        response = await self.interceptor.request("POST", "/api/orders/create", headers=self.headers, json=payload)

        if is_offline_response(response):
            return MutationResult(False, "Checkout requires an internet connection")
        if response.status_code != 201:
            return MutationResult(False, _error_message(response, "Failed to place order"), data=_json(response))

        body = _json(response)
        logger.info(f"Order {body['order']['orderNumber']} placed")
        return MutationResult(True, body.get("message", "Order created successfully"), data=body["order"])

    async def _mutate(self, method: str, path: str, body: dict | None, done: str, deferred: str, failed: str) -> MutationResult:
        content = json.dumps(body) if body is not None else None

        if not self.connectivity.online:
            return await self._defer(method, path, content, deferred)

        response = await self.interceptor.request(method, path, headers=self.headers, content=content)
        if is_offline_response(response):
            # flaga mowila online, ale siec padla po drodze
            return await self._defer(method, path, content, deferred)
        if not response.is_success:
            return MutationResult(False, _error_message(response, failed))
        return MutationResult(True, done)

    async def _defer(self, method: str, path: str, content: str | None, deferred: str) -> MutationResult:
        op_id = await self.queue.enqueue(method, str(self.interceptor.url(path)), self.headers, content)
        if op_id is None:
            return MutationResult(False, "Could not save the change for later, please retry when online")
        return MutationResult(True, deferred, queued=True)
