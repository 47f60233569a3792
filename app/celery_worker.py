# app/celery_worker.py
from celery import Celery

from app.utils.settings import Settings, get_settings


def create_celery(settings: Settings) -> Celery:
    celery_app = Celery(
        "marketplace",
        broker=settings.celery_broker_url,
        backend=settings.celery_result_backend,
    )

    # WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
    celery_app.conf.imports = (
        "app.tasks.notifications",
    )

    # Konfiguracja beat schedule
    celery_app.conf.beat_schedule = {
        "purge-expired-notifications-hourly": {
            "task": "app.tasks.notifications.purge_expired_notifications",
            "schedule": 60.0 * 60,  # co godzine
        },
    }

    celery_app.conf.timezone = "UTC"
    celery_app.conf.task_always_eager = settings.celery_task_always_eager
    return celery_app


# punkt wejscia workera: celery -A app.celery_worker worker -B
celery_app = create_celery(get_settings())
