# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from storefront.domain.order_status import OrderStatus


class CartAddIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., alias="productId", ge=1)
    quantity: int = Field(1, ge=1)

    model_config = ConfigDict(populate_by_name=True)


class CartUpdateIn(BaseModel):
    """Ustawia ilosc (nie inkrementuje), wiec replay z kolejki jest bezpieczny."""

    quantity: int = Field(..., ge=1)


class CartItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    price: Decimal
    quantity: int
    stock_quantity: int
    item_total: Decimal


class CartOut(BaseModel):
    items: List[CartItemOut]
    total: Decimal
    count: int


class MessageOut(BaseModel):
    message: str


class Address(BaseModel):
    """Adres jest snapshotowany w zamowieniu; brakujace pola waliduje serwis."""

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    address_line1: Optional[str] = Field(None, alias="addressLine1")
    address_line2: Optional[str] = Field(None, alias="addressLine2")
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = Field(None, alias="postalCode")
    country: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class OrderCreateIn(BaseModel):
    shipping_address: Optional[Address] = Field(None, alias="shippingAddress")
    billing_address: Optional[Address] = Field(None, alias="billingAddress")

    model_config = ConfigDict(populate_by_name=True)


class OrderSummary(BaseModel):
    id: int
    order_number: str = Field(..., serialization_alias="orderNumber")
    total_amount: Decimal = Field(..., serialization_alias="totalAmount")
    status: OrderStatus

    model_config = ConfigDict(from_attributes=True)


class OrderCreatedOut(BaseModel):
    message: str
    order: OrderSummary


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    quantity: int
    price: Decimal


class OrderOut(BaseModel):
    id: int
    user_id: int
    order_number: str
    status: OrderStatus
    total_amount: Decimal
    shipping_address: dict
    billing_address: Optional[dict] = None
    tracking_number: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    item_count: int = 0
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListOut(BaseModel):
    orders: List[OrderOut]
    pagination: Pagination


class VerifiedPurchaseOut(BaseModel):
    product_id: int
    verified: bool


class OrderStatusIn(BaseModel):
    status: OrderStatus
    tracking_number: Optional[str] = Field(None, alias="trackingNumber", max_length=40)

    model_config = ConfigDict(populate_by_name=True)


class RestockIn(BaseModel):
    quantity: int = Field(..., gt=0)


class ProductOut(BaseModel):
    id: int
    name: str
    price: Decimal
    stock_quantity: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
