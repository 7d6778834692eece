# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysyłania powiadomień.
    Używa Celery do asynchronicznego przetwarzania.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int, order_number: str):
        """
        Wysyła powiadomienie o rozpoczęciu realizacji zamówienia.
        """
        send_order_notification_task.delay(user_id, order_id, order_number)


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int, order_number: str):
    """
    Celery task - powiadomienie dla klienta, teraz tylko logujemy.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_number} ({order_id}) is being processed")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}
