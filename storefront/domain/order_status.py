# storefront/domain/order_status.py
from enum import Enum

from storefront.domain.errors import InvalidStatusTransitionError


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# zamowienie z tymi statusami liczy sie jako zakup (stock zdjety przy commit)
PURCHASED_STATUSES = frozenset({OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED})

_FORWARD = {
    OrderStatus.PENDING: OrderStatus.PROCESSING,
    OrderStatus.PROCESSING: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
}


def allowed_transitions(current: OrderStatus) -> set[OrderStatus]:
    if current in TERMINAL_STATUSES:
        return set()
    return {_FORWARD[current], OrderStatus.CANCELLED}


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Rzuca InvalidStatusTransitionError jesli przejscie nie jest dozwolone."""
    if target not in allowed_transitions(current):
        raise InvalidStatusTransitionError(current.value, target.value)


def accepts_tracking_number(target: OrderStatus) -> bool:
    # tracking dopiero przy processing -> shipped albo pozniej
    return target in (OrderStatus.SHIPPED, OrderStatus.DELIVERED)
