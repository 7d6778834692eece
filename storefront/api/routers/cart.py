# storefront/api/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user_id
from storefront.data.database import get_db
from storefront.domain.schemas import CartAddIn, CartUpdateIn, CartOut, MessageOut
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return get_service(db).get_cart(user_id)


@router.post("/add", response_model=MessageOut)
def add_item(
    payload: CartAddIn,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.add_item(user_id, payload.product_id, payload.quantity)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Item added to cart"}


@router.put("/update/{cart_item_id}", response_model=MessageOut)
def update_item(
    cart_item_id: int,
    payload: CartUpdateIn,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.update_item(user_id, cart_item_id, payload.quantity)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Cart updated"}


@router.delete("/remove/{cart_item_id}", response_model=MessageOut)
def remove_item(
    cart_item_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.remove_item(user_id, cart_item_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Item removed from cart"}


@router.delete("/clear", response_model=MessageOut)
def clear_cart(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    get_service(db).clear(user_id)
    return {"message": "Cart cleared"}
