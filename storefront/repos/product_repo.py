# storefront/repos/product_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_active_product(self, product_id: int) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(ProductModel.id == product_id, ProductModel.is_active.is_(True))
        ).scalar_one_or_none()

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        """
        Warunkowy update: zdejmij stock tylko jesli wystarczy.
        UPDATE ... WHERE stock_quantity >= :q bierze row lock, wiec rownolegle
        commity na tym samym produkcie sa serializowane przez baze.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock_quantity >= quantity)
            .values(stock_quantity=ProductModel.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_stock(self, product_id: int, quantity: int) -> bool:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock_quantity=ProductModel.stock_quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
