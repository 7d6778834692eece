# storefront/services/order_service.py
import math
import secrets
import time
import uuid
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from redis.exceptions import RedisError

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.errors import (
    REQUIRED_ADDRESS_FIELDS,
    AddressValidationError,
    CheckoutInProgressError,
    EmptyCartError,
    InsufficientStockError,
    TransientCommitError,
)
from storefront.domain.order_status import (
    OrderStatus,
    accepts_tracking_number,
    ensure_transition,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.utils.settings import CHECKOUT_GUARD_TTL_SECONDS, COMMIT_LOCK_TIMEOUT_MS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def generate_order_number() -> str:
    # timestamp w ns + losowy sufiks, kolizja praktycznie niemozliwa
    return f"ORD-{time.time_ns():x}{secrets.token_hex(3)}".upper()


def generate_tracking_number() -> str:
    return f"TRK{secrets.token_hex(8).upper()}"


class _CartChanged(Exception):
    """Koszyk zniknal w trakcie commitu (inny checkout tego samego usera)."""


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień.

    commit_order zamienia koszyk w zamowienie jako jedna transakcja:
    walidacja stocku, zamowienie + pozycje, zdjecie stocku, czyszczenie koszyka.
    Albo wszystko, albo nic.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        notification_service: NotificationService | None = None,
        lock_timeout_ms: int = COMMIT_LOCK_TIMEOUT_MS,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.product_repo = ProductRepo(db)
        self.lock_service = lock_service
        self.notification_service = notification_service
        self.lock_timeout_ms = lock_timeout_ms

    # =====================================================
    # COMMIT
    # =====================================================
    def commit_order(
        self,
        user_id: int,
        shipping_address: Dict[str, Any] | None,
        billing_address: Dict[str, Any] | None = None,
    ) -> OrderModel:
        """
        Use Case: Tworzenie zamówienia z koszyka.

        1. Walidacja adresu (bez efektow ubocznych)
        2. Snapshot koszyka i sprawdzenie stocku
        3. Zamowienie, pozycje, warunkowy decrement stocku, czyszczenie koszyka
        4. Commit albo rollback calosci
        5. Powiadomienie (async)
        """
        shipping_address = shipping_address or {}
        missing = [f for f in REQUIRED_ADDRESS_FIELDS if not shipping_address.get(f)]
        if missing:
            raise AddressValidationError(missing)

        token = self._acquire_guard(user_id)
        try:
            order = self._commit(user_id, shipping_address, billing_address)
        finally:
            self._release_guard(user_id, token)

        self._notify(order)
        return order

    def _commit(self, user_id, shipping_address, billing_address) -> OrderModel:
        try:
            self.repo.set_lock_timeout(self.lock_timeout_ms)

            lines = self.repo.snapshot_cart_lines(user_id)
            if not lines:
                raise EmptyCartError()

            for line in lines:
                if line.quantity > line.stock_quantity:
                    raise InsufficientStockError(
                        line.product_id, line.name, line.quantity, line.stock_quantity
                    )

            # ceny ze snapshotu, nie aktualne
            total = sum((line.price * line.quantity for line in lines), Decimal("0.00"))

            order = self.repo.add_order(
                OrderModel(
                    user_id=user_id,
                    order_number=generate_order_number(),
                    status=OrderStatus.PROCESSING.value,
                    total_amount=total,
                    shipping_address=shipping_address,
                    billing_address=billing_address,
                    tracking_number=generate_tracking_number(),
                )
            )

            for line in lines:
                self.repo.add_order_item(
                    OrderItemModel(
                        order_id=order.id,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        price=line.price,
                    )
                )
                # rownolegly commit mogl zdjac stock po naszym odczycie
                if not self.product_repo.decrement_stock(line.product_id, line.quantity):
                    raise InsufficientStockError(line.product_id, line.name, line.quantity)

            removed = self.cart_repo.clear(user_id)
            if removed < len(lines):
                raise _CartChanged()

            self.repo.commit()

        except (EmptyCartError, InsufficientStockError) as e:
            self.repo.rollback()
            logger.warning(f"Order commit rejected for user {user_id}: {e}")
            raise
        except _CartChanged:
            self.repo.rollback()
            logger.warning(f"Cart of user {user_id} changed during commit, rolled back")
            raise TransientCommitError("Cart was modified during checkout, please retry")
        except (OperationalError, DBAPIError) as e:
            # lock timeout / serialization failure
            self.repo.rollback()
            logger.error(f"Order commit for user {user_id} aborted: {e}")
            raise TransientCommitError("Order could not be completed right now, please retry") from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Order commit for user {user_id} failed: {e}")
            raise TransientCommitError("Order could not be created") from e

        logger.info(
            f"Order {order.order_number} ({order.id}) created for user {user_id}, "
            f"total {order.total_amount}, {len(lines)} lines"
        )
        return order

    def _acquire_guard(self, user_id: int) -> str | None:
        if self.lock_service is None:
            return None
        token = uuid.uuid4().hex
        try:
            locked = self.lock_service.acquire_checkout_lock(user_id, token, CHECKOUT_GUARD_TTL_SECONDS)
        except RedisError as e:
            raise TransientCommitError("Checkout is temporarily unavailable") from e
        if not locked:
            raise CheckoutInProgressError(user_id)
        return token

    def _release_guard(self, user_id: int, token: str | None):
        if token is None:
            return
        try:
            self.lock_service.release_checkout_lock(user_id, token)
        except RedisError as e:
            # lock i tak wygasnie po TTL
            logger.warning(f"Failed to release checkout lock for user {user_id}: {e}")

    def _notify(self, order: OrderModel):
        if self.notification_service is None:
            return
        try:
            self.notification_service.send_order_notification(order.user_id, order.id, order.order_number)
        except Exception as e:
            logger.warning(f"Failed to queue notification for order {order.id}: {e}")

    # =====================================================
    # QUERY
    # =====================================================
    def list_orders(self, user_id: int, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        orders = self.repo.list_user_orders(user_id, limit=limit, offset=(page - 1) * limit)
        counts = self.repo.item_counts([o.id for o in orders])
        total = self.repo.count_user_orders(user_id)

        return {
            "orders": [self._order_dict(o, item_count=counts.get(o.id, 0)) for o in orders],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    def get_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        order = self.repo.get_user_order(order_id, user_id)
        if not order:
            raise LookupError("Order not found")

        items = [
            {
                "id": item.id,
                "product_id": item.product_id,
                "name": name,
                "quantity": item.quantity,
                "price": item.price,
            }
            for item, name in self.repo.get_order_items(order.id)
        ]
        return self._order_dict(order, item_count=len(items), items=items)

    def is_verified_purchase(self, user_id: int, product_id: int) -> bool:
        return self.repo.has_purchased(user_id, product_id)

    # =====================================================
    # ADMIN
    # =====================================================
    def change_status(self, order_id: int, status: OrderStatus, tracking_number: str | None = None) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise LookupError("Order not found")

        ensure_transition(OrderStatus(order.status), status)

        if tracking_number and not accepts_tracking_number(status):
            raise ValueError("Tracking number can only be set when the order is shipped")

        order.status = status.value
        if tracking_number:
            order.tracking_number = tracking_number
        self.repo.commit()

        logger.info(f"Order {order.order_number} status -> {status.value}")
        return order

    @staticmethod
    def _order_dict(order: OrderModel, item_count: int = 0, items=None) -> Dict[str, Any]:
        return {
            "id": order.id,
            "user_id": order.user_id,
            "order_number": order.order_number,
            "status": order.status,
            "total_amount": order.total_amount,
            "shipping_address": order.shipping_address,
            "billing_address": order.billing_address,
            "tracking_number": order.tracking_number,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
            "item_count": item_count,
            "items": items or [],
        }
