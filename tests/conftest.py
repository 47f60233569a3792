from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.api import create_app
from app.data.database import create_db_engine, init_db
from app.domain.enums import Role
from app.domain.errors import NotFoundError
from app.domain.schemas import AddressCreate, ProductSnapshot
from app.services.address_service import AddressService
from app.services.cart_service import CartService
from app.services.identity_service import IdentityService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.rental_request_service import RentalRequestService
from app.utils.settings import Settings

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)

RENTER = 1
OTHER = 2
OWNER = 100
SELLER = 200


class FakeCatalog:
    """Katalog w pamieci zamiast product-service."""

    def __init__(self):
        self.products = {
            10: ProductSnapshot(
                id=10, owner_id=OWNER, title="Tractor", price=Decimal("50.00"),
                rental_price=Decimal("20.00"), stock=5,
            ),
            11: ProductSnapshot(
                id=11, owner_id=OWNER, title="Fertilizer", price=Decimal("30.00"),
                rental_price=None, stock=10,
            ),
            12: ProductSnapshot(
                id=12, owner_id=SELLER, title="Sprayer", price=Decimal("15.00"),
                rental_price=Decimal("5.00"), stock=3,
            ),
            13: ProductSnapshot(
                id=13, owner_id=OWNER, title="Old plough", price=Decimal("10.00"),
                rental_price=Decimal("2.00"), stock=1, is_active=False,
            ),
        }

    def get_product(self, product_id: int) -> ProductSnapshot:
        product = self.products.get(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product


class RecordingDispatcher:
    def __init__(self):
        self.events = []

    def emit(self, kind, recipient_id, payload):
        self.events.append((kind, recipient_id, payload))

    def kinds(self):
        return [kind for kind, _, _ in self.events]


def fixed_clock():
    return NOW


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", jwt_secret="test-secret", celery_task_always_eager=True)


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def address_service(db):
    return AddressService(db)


@pytest.fixture
def cart_service(db, catalog):
    return CartService(db, catalog)


@pytest.fixture
def rental_service(db, catalog, dispatcher):
    return RentalRequestService(db, catalog, dispatcher, clock=fixed_clock)


@pytest.fixture
def order_service(db, catalog, dispatcher):
    return OrderService(db, catalog, dispatcher, clock=fixed_clock)


@pytest.fixture
def notification_service(db):
    return NotificationService(db)


def address_payload(**overrides) -> AddressCreate:
    data = {
        "full_name": "Jan Kowalski",
        "phone_number": "+48 600 100 200",
        "address_line1": "ul. Polna 1",
        "city": "Lublin",
        "state": "lubelskie",
        "pincode": "20-001",
        "country": "PL",
    }
    data.update(overrides)
    return AddressCreate(**data)


@pytest.fixture
def renter_address(address_service):
    return address_service.create_address(RENTER, address_payload())


@pytest.fixture
def identity(settings):
    return IdentityService(settings)


@pytest.fixture
def client(settings, session_factory, catalog, dispatcher, identity):
    app = create_app(
        settings,
        session_factory=session_factory,
        product_client=catalog,
        notifier=dispatcher,
        identity=identity,
        clock=fixed_clock,
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth(identity):
    def headers(user_id: int, role: Role = Role.FARMER):
        return {"Authorization": f"Bearer {identity.issue_token(user_id, role)}"}

    return headers
