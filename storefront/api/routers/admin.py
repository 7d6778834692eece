# storefront/api/routers/admin.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_admin_user_id, get_order_service
from storefront.data.database import get_db
from storefront.domain.schemas import MessageOut, OrderStatusIn, ProductOut, RestockIn
from storefront.services.inventory_service import InventoryService
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(get_admin_user_id)])


@router.put("/orders/{order_id}/status", response_model=MessageOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    svc: OrderService = Depends(get_order_service),
):
    try:
        svc.change_status(order_id, payload.status, payload.tracking_number)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Order status updated successfully"}


@router.post("/products/{product_id}/restock", response_model=ProductOut)
def restock_product(product_id: int, payload: RestockIn, db: Session = Depends(get_db)):
    try:
        return InventoryService(db).restock(product_id, payload.quantity)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
