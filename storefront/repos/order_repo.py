# storefront/repos/order_repo.py
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, func, text
from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.product import ProductModel
from storefront.domain.order_status import PURCHASED_STATUSES


@dataclass(frozen=True)
class CartLine:
    """Snapshot pozycji koszyka z poczatku transakcji."""

    product_id: int
    name: str
    quantity: int
    price: Decimal
    stock_quantity: int


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def set_lock_timeout(self, timeout_ms: int):
        # tylko postgres ma lock_timeout per transakcja, sqlite ma busy timeout na polaczeniu
        if self.db.get_bind().dialect.name == "postgresql":
            self.db.execute(text(f"SET LOCAL lock_timeout = {int(timeout_ms)}"))

    def snapshot_cart_lines(self, user_id: int) -> list[CartLine]:
        rows = self.db.execute(
            select(
                CartItemModel.product_id,
                ProductModel.name,
                CartItemModel.quantity,
                ProductModel.price,
                ProductModel.stock_quantity,
            )
            .join(ProductModel, CartItemModel.product_id == ProductModel.id)
            .where(CartItemModel.user_id == user_id, ProductModel.is_active.is_(True))
            .order_by(CartItemModel.product_id)
        ).all()
        return [
            CartLine(
                product_id=r.product_id,
                name=r.name,
                quantity=r.quantity,
                price=Decimal(r.price),
                stock_quantity=r.stock_quantity,
            )
            for r in rows
        ]

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_order_item(self, item: OrderItemModel) -> OrderItemModel:
        self.db.add(item)
        return item

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_user_order(self, order_id: int, user_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.id == order_id, OrderModel.user_id == user_id)
        ).scalar_one_or_none()

    def list_user_orders(self, user_id: int, limit: int, offset: int) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .limit(limit)
                .offset(offset)
            ).scalars()
        )

    def count_user_orders(self, user_id: int) -> int:
        return self.db.execute(
            select(func.count(OrderModel.id)).where(OrderModel.user_id == user_id)
        ).scalar_one()

    def item_counts(self, order_ids: list[int]) -> dict[int, int]:
        if not order_ids:
            return {}
        rows = self.db.execute(
            select(OrderItemModel.order_id, func.count(OrderItemModel.id))
            .where(OrderItemModel.order_id.in_(order_ids))
            .group_by(OrderItemModel.order_id)
        ).all()
        return {order_id: count for order_id, count in rows}

    def get_order_items(self, order_id: int):
        return self.db.execute(
            select(OrderItemModel, ProductModel.name)
            .join(ProductModel, OrderItemModel.product_id == ProductModel.id)
            .where(OrderItemModel.order_id == order_id)
            .order_by(OrderItemModel.id)
        ).all()

    def has_purchased(self, user_id: int, product_id: int) -> bool:
        found = self.db.execute(
            select(OrderItemModel.id)
            .join(OrderModel, OrderItemModel.order_id == OrderModel.id)
            .where(
                OrderModel.user_id == user_id,
                OrderItemModel.product_id == product_id,
                OrderModel.status.in_([s.value for s in PURCHASED_STATUSES]),
            )
            .limit(1)
        ).first()
        return found is not None

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
