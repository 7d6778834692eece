# storefront/services/inventory_service.py
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepo(db)

    def restock(self, product_id: int, quantity: int) -> ProductModel:
        """Jedyna zmiana stocku poza commitem zamowienia - zawsze increment."""
        if quantity <= 0:
            raise ValueError("Restock quantity must be positive")

        if not self.repo.increment_stock(product_id, quantity):
            self.db.rollback()
            raise LookupError("Product not found")
        self.db.commit()

        product = self.repo.get_product(product_id)
        self.db.refresh(product)
        logger.info(f"Restocked product {product_id} by {quantity}, now {product.stock_quantity}")
        return product
