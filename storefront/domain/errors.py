# storefront/domain/errors.py
"""
Bledy domenowe.
Dziedzicza po wbudowanych typach, zeby routery mapowaly je tak jak reszte:
ValueError -> 400, LookupError -> 404, RuntimeError -> 503.
"""

REQUIRED_ADDRESS_FIELDS = ("firstName", "lastName", "addressLine1", "city", "state", "postalCode")


class AddressValidationError(ValueError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__("Missing required shipping address fields")


class EmptyCartError(ValueError):
    def __init__(self):
        super().__init__("Cart is empty")


class InsufficientStockError(ValueError):
    def __init__(self, product_id: int, product_name: str, requested: int, available: int | None = None):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {product_name}")


class InvalidStatusTransitionError(ValueError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change order status from {current} to {target}")


class TransientCommitError(RuntimeError):
    """Commit przerwany (lock timeout, konflikt) - mozna ponowic pozniej."""


class CheckoutInProgressError(TransientCommitError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__("Another checkout is already in progress")
