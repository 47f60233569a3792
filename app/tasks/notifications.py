# app/tasks/notifications.py
from celery import Task, shared_task
from sqlalchemy.orm import sessionmaker

from app.data.database import create_session_factory
from app.domain.enums import NotificationKind
from app.services.notification_service import NotificationService
from app.utils.settings import get_settings
from app.utils.logging import get_logger

logger = get_logger(__name__)

DELIVER_NOTIFICATION = "app.tasks.notifications.deliver_notification"
PURGE_EXPIRED_NOTIFICATIONS = "app.tasks.notifications.purge_expired_notifications"


class DatabaseTask(Task):
    """Task z wlasna fabryka sesji, tworzona raz na proces workera."""

    _session_factory: sessionmaker | None = None

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = create_session_factory(get_settings())
        return self._session_factory


@shared_task(bind=True, base=DatabaseTask, name=DELIVER_NOTIFICATION)
def deliver_notification(self, kind: str, recipient_id: int, payload: dict):
    """
    Zapisuje powiadomienie w skrzynce odbiorcy.
    W prawdziwym systemie tu bylby tez push/email.
    """
    db = self.session_factory()
    try:
        svc = NotificationService(db, ttl_days=get_settings().notification_ttl_days)
        created = svc.record(NotificationKind(kind), recipient_id, payload)
        return {"notification_id": created.id, "user_id": recipient_id, "status": "sent"}
    finally:
        db.close()


@shared_task(bind=True, base=DatabaseTask, name=PURGE_EXPIRED_NOTIFICATIONS)
def purge_expired_notifications(self):
    logger.info("Purge expired notifications task started")

    db = self.session_factory()
    try:
        return NotificationService(db, ttl_days=get_settings().notification_ttl_days).purge_expired()
    finally:
        db.close()
