# app/api/__init__.py
from typing import Callable

from fastapi import FastAPI
from sqlalchemy.orm import sessionmaker

from app.api.errors import register_error_handlers
from app.api.routers import addresses, carts, health, notifications, orders, rental_requests
from app.data.database import create_session_factory, init_db
from app.services.broker_probe import BrokerProbe
from app.services.identity_service import IdentityService
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.product_client import ProductClient
from app.utils.clock import utcnow
from app.utils.settings import Settings, get_settings
from app.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    session_factory: sessionmaker | None = None,
    product_client=None,
    notifier=None,
    identity: IdentityService | None = None,
    clock: Callable | None = None,
    broker_probe: BrokerProbe | None = None,
) -> FastAPI:
    """
    Sklada aplikacje. Kazdy kolaborator moze byc podmieniony (testy),
    domyslnie budowany z settings.
    """
    settings = settings or get_settings()

    if session_factory is None:
        session_factory = create_session_factory(settings)
    init_db(session_factory.kw["bind"])
    logger.info("Database tables ready")

    if notifier is None:
        from app.celery_worker import create_celery

        notifier = NotificationDispatcher(create_celery(settings))

    app = FastAPI(title="Marketplace Service", version="1.0.0")

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.product_client = product_client or ProductClient(
        settings.product_service_url, timeout=settings.product_service_timeout
    )
    app.state.notifier = notifier
    app.state.identity = identity or IdentityService(settings)
    app.state.clock = clock or utcnow
    app.state.broker_probe = broker_probe or BrokerProbe(settings.redis_url)

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(addresses.router)
    app.include_router(carts.router)
    app.include_router(rental_requests.router)
    app.include_router(orders.router)
    app.include_router(notifications.router)

    return app
