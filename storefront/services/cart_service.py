from decimal import Decimal
from typing import Dict, Any
from sqlalchemy.orm import Session
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import InsufficientStockError
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

class CartService:
    """
    Koszyk uzytkownika: jedna pozycja na (user_id, product_id).
    Endpointy sa tez celem replay'u kolejki offline, wiec update ustawia
    ilosc zamiast ja zwiekszac.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    #query - odczyt
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        rows = self.repo.get_cart_rows(user_id)

        items = [
            {
                "id": item.id,
                "product_id": product.id,
                "name": product.name,
                "price": product.price,
                "quantity": item.quantity,
                "stock_quantity": product.stock_quantity,
                "item_total": product.price * item.quantity,
            }
            for item, product in rows
        ]
        total = sum((i["item_total"] for i in items), Decimal("0.00"))

        return {"items": items, "total": total, "count": len(items)}

    #commands
    def add_item(self, user_id: int, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise ValueError("Quantity must be at least 1")

        product = self.products.get_active_product(product_id)
        if not product:
            raise LookupError("Product not found")

        if quantity > product.stock_quantity:
            raise InsufficientStockError(product.id, product.name, quantity, product.stock_quantity)

        existing = self.repo.get_item(user_id, product_id)

        if existing:
            new_quantity = existing.quantity + quantity
            if new_quantity > product.stock_quantity:
                raise InsufficientStockError(product.id, product.name, new_quantity, product.stock_quantity)
            logger.info(
                f"Produkt {product_id} juz jest w koszyku usera {user_id}, "
                f"ilosc {existing.quantity} -> {new_quantity}"
            )
            existing.quantity = new_quantity
        else:
            logger.info(f"Dodaje produkt {product_id} (x{quantity}) do koszyka usera {user_id}")
            self.repo.add_item(CartItemModel(user_id=user_id, product_id=product_id, quantity=quantity))

        self.repo.commit()

    def update_item(self, user_id: int, cart_item_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise ValueError("Quantity must be at least 1")

        item = self.repo.get_item_by_id(user_id, cart_item_id)
        if not item:
            raise LookupError("Cart item not found")

        product = self.products.get_product(item.product_id)
        if quantity > product.stock_quantity:
            raise InsufficientStockError(product.id, product.name, quantity, product.stock_quantity)

        item.quantity = quantity
        self.repo.commit()
        logger.info(f"Pozycja {cart_item_id} usera {user_id} ustawiona na {quantity}")

    def remove_item(self, user_id: int, cart_item_id: int) -> None:
        removed = self.repo.delete_item(user_id, cart_item_id)
        if removed == 0:
            self.repo.rollback()
            raise LookupError("Cart item not found")
        self.repo.commit()
        logger.info(f"Usunieto pozycje {cart_item_id} z koszyka usera {user_id}")

    def clear(self, user_id: int) -> int:
        removed = self.repo.clear(user_id)
        self.repo.commit()
        logger.info(f"Wyczyszczono koszyk usera {user_id} ({removed} pozycji)")
        return removed
