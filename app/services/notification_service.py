# app/services/notification_service.py
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.data.models.notification import NotificationModel
from app.domain.enums import NotificationKind, NotificationPriority
from app.domain.errors import NotFoundError
from app.repos.notification_repo import NotificationRepo
from app.utils.clock import utcnow
from app.utils.logging import get_logger

logger = get_logger(__name__)


# tytul, tresc, priorytet dla kazdego typu powiadomienia
NOTIFICATION_TEMPLATES = {
    NotificationKind.RENTAL_REQUEST: (
        "New Rental Request",
        "You have received a new rental request for your product",
        NotificationPriority.HIGH,
    ),
    NotificationKind.RENTAL_APPROVED: (
        "Rental Request Approved",
        "Your rental request has been approved",
        NotificationPriority.HIGH,
    ),
    NotificationKind.RENTAL_REJECTED: (
        "Rental Request Rejected",
        "Your rental request has been rejected",
        NotificationPriority.MEDIUM,
    ),
    NotificationKind.RENTAL_COMPLETED: (
        "Rental Delivered",
        "The product you rented has been marked as delivered",
        NotificationPriority.MEDIUM,
    ),
    NotificationKind.RENTAL_RETURNED: (
        "Rental Returned",
        "Your rental has been marked as returned. You can now rate it",
        NotificationPriority.LOW,
    ),
    NotificationKind.ORDER_UPDATE: (
        "New Order",
        "New order #{order_number} has been placed. Order total: {total_price}",
        NotificationPriority.HIGH,
    ),
}


def _action_url(kind: NotificationKind, payload: Dict[str, Any]) -> str | None:
    if payload.get("rental_request_id") is not None:
        return f"/rental-requests/{payload['rental_request_id']}"
    if kind == NotificationKind.ORDER_UPDATE and payload.get("order_id") is not None:
        return f"/orders/{payload['order_id']}"
    return None


class NotificationService:
    """
    Skrzynka powiadomien usera.
    record() wywoluje task celery, reszta to odczyt/oznaczanie przez odbiorce.
    """

    def __init__(self, db: Session, ttl_days: int = 90):
        self.repo = NotificationRepo(db)
        self.ttl_days = ttl_days

    def record(self, kind: NotificationKind, recipient_id: int, payload: Dict[str, Any]) -> NotificationModel:
        title, message, priority = NOTIFICATION_TEMPLATES[kind]
        now = utcnow()

        notification = NotificationModel(
            user_id=recipient_id,
            from_user_id=payload.get("from_user_id"),
            title=title,
            message=message.format(**payload) if "{" in message else message,
            type=kind.value,
            priority=priority.value,
            related_product_id=payload.get("product_id"),
            related_rental_request_id=payload.get("rental_request_id"),
            related_order_id=payload.get("order_id"),
            action_url=_action_url(kind, payload),
            expires_at=now + timedelta(days=self.ttl_days),
            created_at=now,
        )
        created = self.repo.create(notification)
        logger.info(f"[NOTIFICATION] User {recipient_id}: {kind.value} ({created.id})")
        return created

    def list_for_user(self, user_id: int, limit: int = 50, skip: int = 0) -> List[NotificationModel]:
        return self.repo.list_for_user(user_id, limit=limit, skip=skip)

    def list_unread(self, user_id: int) -> List[NotificationModel]:
        return self.repo.list_unread(user_id)

    def unread_count(self, user_id: int) -> int:
        return self.repo.count_unread(user_id)

    def mark_read(self, notification_id: int, user_id: int) -> NotificationModel:
        notification = self.repo.get_for_user(notification_id, user_id)
        if not notification:
            raise NotFoundError("Notification not found")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            self.repo.commit()
        return notification

    def mark_all_read(self, user_id: int) -> int:
        count = self.repo.mark_all_read(user_id, utcnow())
        self.repo.commit()
        return count

    def delete(self, notification_id: int, user_id: int) -> None:
        notification = self.repo.get_for_user(notification_id, user_id)
        if not notification:
            raise NotFoundError("Notification not found")

        notification.is_deleted = True
        notification.deleted_at = utcnow()
        self.repo.commit()

    def delete_all(self, user_id: int) -> int:
        count = self.repo.soft_delete_all(user_id, utcnow())
        self.repo.commit()
        return count

    def purge_expired(self) -> int:
        count = self.repo.delete_expired(utcnow())
        self.repo.commit()
        if count:
            logger.info(f"Purged {count} expired notifications")
        return count
