# storefront/api/routers/orders.py
from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.api.deps import get_current_user_id, get_order_service
from storefront.domain.errors import (
    AddressValidationError,
    CheckoutInProgressError,
    InsufficientStockError,
    REQUIRED_ADDRESS_FIELDS,
)
from storefront.domain.schemas import (
    OrderCreateIn,
    OrderCreatedOut,
    OrderListOut,
    OrderOut,
    OrderSummary,
    VerifiedPurchaseOut,
)
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("/create", response_model=OrderCreatedOut, status_code=201)
def create_order(
    payload: OrderCreateIn,
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    """
    Tworzy zamówienie z koszyka usera (atomowo).
    Wysyła powiadomienie asynchronicznie.
    """
    shipping = payload.shipping_address.model_dump(by_alias=True, exclude_none=True) if payload.shipping_address else None
    billing = payload.billing_address.model_dump(by_alias=True, exclude_none=True) if payload.billing_address else None
    try:
        order = svc.commit_order(user_id, shipping, billing)
    except AddressValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "required": list(REQUIRED_ADDRESS_FIELDS), "missing": e.missing},
        )
    except InsufficientStockError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "productId": e.product_id, "requested": e.requested, "available": e.available},
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {"message": "Order created successfully", "order": OrderSummary.model_validate(order)}


@router.get("", response_model=OrderListOut)
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_orders(user_id, page=page, limit=limit)


@router.get("/verified-purchase/{product_id}", response_model=VerifiedPurchaseOut)
def verified_purchase(
    product_id: int,
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    return {"product_id": product_id, "verified": svc.is_verified_purchase(user_id, product_id)}


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    try:
        return svc.get_order(order_id, user_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
