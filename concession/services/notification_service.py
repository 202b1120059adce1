# concession/services/notification_service.py
from concession.celery_worker import celery_app
from concession.domain.entities import Order
from concession.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order notices, sent asynchronously through Celery.
    """

    @staticmethod
    def notify_new_order(order: Order):
        """
        New order for the staff serving its destination.
        """
        send_new_order_task.delay(order.id, order.destination_kind.value, str(order.total_amount))

    @staticmethod
    def notify_order_ready(order: Order):
        """
        The customer's order can be picked up (or is on its way).
        """
        send_order_ready_task.delay(order.account_id, order.id, order.destination_kind.value)


@celery_app.task(name="concession.services.notification_service.send_new_order_task")
def send_new_order_task(order_id: int, destination: str, total: str):
    """
    Celery task - a real deployment would push a message to the staff chat.
    Here it only logs.
    """
    logger.info(f"[NOTIFICATION] {destination} staff: new order #{order_id}, total {total}")
    return {"order_id": order_id, "destination": destination, "status": "sent"}


@celery_app.task(name="concession.services.notification_service.send_order_ready_task")
def send_order_ready_task(account_id: int, order_id: int, destination: str):
    logger.info(f"[NOTIFICATION] Account {account_id}: order #{order_id} is ready ({destination})")
    return {"account_id": account_id, "order_id": order_id, "status": "sent"}
