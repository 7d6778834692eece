# storefront/api/deps.py
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.repos.user_repo import UserRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService


# tozsamosc usera wstrzykuje gateway autoryzacji (poza tym serwisem)
def get_current_user_id(
    x_user_id: int | None = Header(None),
    db: Session = Depends(get_db),
) -> int:
    if x_user_id is None or UserRepo(db).get_user(x_user_id) is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id


def get_admin_user_id(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> int:
    if not UserRepo(db).get_user(user_id).is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user_id


def get_lock_service() -> LockService:
    return LockService()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_order_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> OrderService:
    return OrderService(db, lock_service=lock_service, notification_service=notification_service)
