# app/services/notification_dispatcher.py
from typing import Any, Dict

from celery import Celery

# rejestracja taskow w procesie API (worker importuje je przez conf.imports)
import app.tasks.notifications  # noqa: F401
from app.tasks.notifications import DELIVER_NOTIFICATION
from app.domain.enums import NotificationKind
from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationDispatcher:
    """
    Fire-and-forget: wrzuca powiadomienie do kolejki celery.
    Wolane dopiero po commicie; blad kolejki jest logowany i polykany,
    nigdy nie psuje glownej operacji.
    """

    def __init__(self, celery_app: Celery):
        self.celery = celery_app

    def emit(self, kind: NotificationKind, recipient_id: int, payload: Dict[str, Any]) -> None:
        try:
            task = self.celery.tasks[DELIVER_NOTIFICATION]
            task.apply_async(args=[kind.value, recipient_id, payload])
            logger.info(f"Queued {kind.value} notification for user {recipient_id}")
        except Exception:
            logger.exception(f"Failed to queue {kind.value} notification for user {recipient_id}")
