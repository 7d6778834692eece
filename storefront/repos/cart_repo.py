# storefront/repos/cart_repo.py
from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.product import ProductModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_rows(self, user_id: int):
        """Pozycje koszyka razem z produktem (tylko aktywne produkty)."""
        stmt = (
            select(CartItemModel, ProductModel)
            .join(ProductModel, CartItemModel.product_id == ProductModel.id)
            .where(CartItemModel.user_id == user_id, ProductModel.is_active.is_(True))
            .order_by(CartItemModel.created_at.desc(), CartItemModel.id.desc())
        )
        return self.db.execute(stmt).all()

    def get_item(self, user_id: int, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.user_id == user_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def get_item_by_id(self, user_id: int, cart_item_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == cart_item_id,
                CartItemModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def add_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_item(self, user_id: int, cart_item_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.id == cart_item_id,
                CartItemModel.user_id == user_id,
            )
        )
        return result.rowcount

    def clear(self, user_id: int) -> int:
        """Usuwa wszystkie pozycje usera, zwraca liczbe usunietych wierszy."""
        result = self.db.execute(delete(CartItemModel).where(CartItemModel.user_id == user_id))
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
