# app/services/order_service.py
import secrets
from decimal import Decimal
from typing import Callable, Dict, Any, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.domain.enums import NotificationKind, OrderStatus, Role
from app.domain.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StaleWriteError,
    ValidationError,
)
from app.domain.pricing import calculate_cart_totals
from app.domain.schemas import CheckoutIn, OrderCreate, ProductSnapshot, ShippingAddress
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.services.address_service import AddressService
from app.services.cart_service import cart_line_unit_price
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.product_client import ProductClient
from app.utils.clock import utcnow
from app.utils.retry import run_with_write_retry, write_retry
from app.utils.logging import get_logger

logger = get_logger(__name__)

STAFF_ROLES = {Role.SUPPORT, Role.ADMIN}


class OrderNumberTaken(Exception):
    pass


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień.
    Separacja od CartService: zamowienie jest niezmienne poza statusem.
    """

    def __init__(
        self,
        db: Session,
        product_client: ProductClient,
        notifier: NotificationDispatcher,
        max_attempts: int = 3,
        order_number_attempts: int = 5,
        clock: Callable = utcnow,
    ):
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.addresses = AddressService(db, max_attempts=max_attempts)
        self.product_client = product_client
        self.notifier = notifier
        self.max_attempts = max_attempts
        self.order_number_attempts = order_number_attempts
        self.clock = clock

    #numer zamowienia
    def _order_number_candidate(self) -> str:
        timestamp = int(self.clock().timestamp() * 1000)
        return f"ORD-{timestamp}-{secrets.randbelow(1000):03d}"

    def generate_order_number(self) -> str:
        """
        ORD-<epoch ms>-<3 cyfry>. Kolizja = nowy kandydat,
        ale najwyzej order_number_attempts razy, potem ConflictError.
        """

        @write_retry(OrderNumberTaken, self.order_number_attempts)
        def attempt():
            candidate = self._order_number_candidate()
            if self.repo.order_number_exists(candidate):
                logger.warning(f"Order number {candidate} already taken, regenerating")
                raise OrderNumberTaken(candidate)
            return candidate

        try:
            return attempt()
        except OrderNumberTaken as e:
            raise ConflictError("Could not generate a unique order number") from e

    #commands
    def create_order(self, buyer_id: int, payload: OrderCreate) -> OrderModel:
        """
        Use Case: Tworzenie zamówienia z listy produktów.
        Ceny i sprzedawcy zawsze z katalogu, nie od klienta.
        """
        lines = []
        for item in payload.items:
            product = self.product_client.get_product(item.product_id)
            self._check_purchasable(product, item.quantity, buyer_id)
            lines.append((product.id, product.owner_id, item.quantity, Decimal(product.price)))

        shipping = self._shipping_snapshot(buyer_id, payload.shipping_address)
        return self._place_order(buyer_id, lines, shipping)

    def checkout(self, buyer_id: int, payload: CheckoutIn) -> OrderModel:
        """
        Use Case: Tworzenie zamówienia z koszyka.

        1. Pobiera pozycje koszyka i sprawdza produkty w katalogu
        2. Tworzy zamówienie (najem wyceniany za cale okno)
        3. Czyści koszyk w tej samej transakcji
        4. Wysyła powiadomienia do sprzedawców (async)
        """
        cart = self.cart_repo.get_by_user(buyer_id)
        if not cart or not cart.items:
            raise ValidationError("Cart is empty")

        lines = []
        for item in cart.items:
            product = self.product_client.get_product(item.product_id)
            self._check_purchasable(product, item.quantity, buyer_id)
            lines.append((product.id, product.owner_id, item.quantity, cart_line_unit_price(item)))

        shipping = self._shipping_snapshot(buyer_id, payload.shipping_address)
        return self._place_order(buyer_id, lines, shipping, cart_version=cart.version)

    def update_status(self, order_id: int, user_id: int, status: OrderStatus) -> OrderModel:
        order = self.get_order(order_id, user_id)

        try:
            order.status = status.value
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number} status -> {status.value} (by user {user_id})")
        return order

    #query
    def get_order(self, order_id: int, user_id: int) -> OrderModel:
        """
        Use Case: Pobranie zamówienia (Query).
        Obcy uzytkownik dostaje NotFound, nie Forbidden.
        """
        order = self.repo.get_for_party(order_id, user_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def list_by_buyer(self, user_id: int) -> List[OrderModel]:
        return self.repo.list_by_buyer(user_id)

    def list_by_seller(self, seller_id: int) -> List[OrderModel]:
        return self.repo.list_by_seller(seller_id)

    def list_all(self, role: Role) -> List[OrderModel]:
        if role not in STAFF_ROLES:
            raise ForbiddenError("Only support or admin can list all orders")
        return self.repo.list_all()

    #helpers
    def _check_purchasable(self, product: ProductSnapshot, quantity: int, buyer_id: int):
        if product.owner_id == buyer_id:
            raise ValidationError("Cannot order your own product")
        if not product.is_available or not product.is_active:
            raise ValidationError(f"Product {product.id} is not available")
        if product.stock < quantity:
            raise ValidationError(f"Insufficient quantity of product {product.id}")

    def _shipping_snapshot(self, buyer_id: int, shipping: ShippingAddress | None) -> Dict[str, Any]:
        if shipping is not None:
            return shipping.model_dump()

        active = self.addresses.get_active(buyer_id)
        if not active:
            raise ValidationError("Shipping address is required")

        return ShippingAddress(
            full_name=active.full_name,
            phone_number=active.phone_number,
            address_line1=active.address_line1,
            address_line2=active.address_line2,
            city=active.city,
            state=active.state,
            pincode=active.pincode,
            country=active.country,
            address_type=active.address_type,
        ).model_dump()

    def _place_order(
        self, buyer_id: int, lines, shipping: Dict[str, Any], cart_version: int | None = None
    ) -> OrderModel:
        total = sum((price * quantity for _, _, quantity, price in lines), Decimal("0.00"))

        def attempt():
            order_number = self.generate_order_number()
            try:
                order = OrderModel(
                    order_number=order_number,
                    buyer_id=buyer_id,
                    status=OrderStatus.PENDING.value,
                    total_price=total,
                    shipping_address=shipping,
                    items=[
                        OrderItemModel(product_id=pid, seller_id=sid, quantity=qty, price=price)
                        for pid, sid, qty, price in lines
                    ],
                )
                self.repo.add_order(order)

                if cart_version is not None:
                    self._clear_cart(buyer_id, cart_version)

                self.repo.commit()
                return order
            except IntegrityError as e:
                #numer zajety rownolegle
                self.repo.rollback()
                logger.warning(f"Order insert lost a race: {e.orig}")
                raise StaleWriteError("order number conflict") from e
            except Exception:
                self.repo.rollback()
                raise

        order = run_with_write_retry(attempt, self.max_attempts, "Could not place the order, try again")
        logger.info(f"Order {order.order_number} ({order.id}) created for user {buyer_id}, total {total}")

        for seller_id in dict.fromkeys(sid for _, sid, _, _ in lines):
            payload = {
                "from_user_id": buyer_id,
                "order_id": order.id,
                "order_number": order.order_number,
                "total_price": str(total),
            }
            try:
                self.notifier.emit(NotificationKind.ORDER_UPDATE, seller_id, payload)
            except Exception:
                #zamowienie juz zapisane, powiadomienie nie moze go cofnac
                logger.exception(f"Order {order.order_number}: notification for seller {seller_id} failed")

        return order

    def _clear_cart(self, buyer_id: int, expected_version: int):
        cart = self.cart_repo.get_by_user(buyer_id)
        cart.items.clear()
        self.cart_repo.flush()

        totals = calculate_cart_totals([])
        rowcount = self.cart_repo.update_cart_version(
            cart_id=cart.id,
            old_version=expected_version,
            new_data={
                "version": expected_version + 1,
                "total_items": totals.total_items,
                "total_sale_price": totals.total_sale_price,
                "total_rental_price": totals.total_rental_price,
            },
        )
        if rowcount == 0:
            #koszyk zmieniony w trakcie, pozycje zamowienia bylyby nieaktualne
            raise ConflictError("Cart changed during checkout, review it and try again")
