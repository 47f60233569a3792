from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.domain.enums import CartItemKind
from app.domain.errors import NotFoundError, ValidationError, StaleWriteError
from app.domain.pricing import rental_days, calculate_cart_totals
from app.domain.schemas import CartItemIn, CartItemUpdate, ProductSnapshot
from app.repos.cart_repo import CartRepo
from app.services.product_client import ProductClient
from app.utils.retry import run_with_write_retry
from app.utils.logging import get_logger

logger = get_logger(__name__)

_CONFLICT = "Konflikt wspolbieznosci - koszyk zostal zmodyfikowany przez inna operacje"


def _check_rental_window(start, end):
    if start is None or end is None:
        raise ValidationError("Rental start and end dates are required for rental items")
    if start >= end:
        raise ValidationError("Rental end date must be after start date")


class CartService:
    """
    Prosta implementacja cqrs i proste use case dla domeny cart
    commands (add, update, remove, clear) modyfikuja stan i przeliczaja sumy
    query (get) tylko odczyt

    Jeden koszyk na usera, tworzony leniwie. Kazda komenda podbija wersje
    koszyka warunkowo (optimistic locking), przegrany wyscig jest ponawiany.
    """

    def __init__(self, db: Session, product_client: ProductClient, max_attempts: int = 3):
        self.repo = CartRepo(db)
        self.product_client = product_client
        self.max_attempts = max_attempts

    #query - odczyt
    def get_cart(self, user_id: int) -> CartModel:
        return self.get_or_create_cart(user_id)

    def get_or_create_cart(self, user_id: int) -> CartModel:
        existing = self.repo.get_by_user(user_id)
        if existing:
            return existing

        try:
            created = self.repo.create_cart(CartModel(user_id=user_id, version=1))
            logger.info(f"Utworzono nowy koszyk {created.id} dla uzytkownika {user_id}")
            return created
        except IntegrityError:
            #rownolegle utworzony przez inne zadanie, bierzemy tamten
            self.repo.rollback()
            return self.repo.get_by_user(user_id)

    #commands
    def add_item(self, user_id: int, payload: CartItemIn) -> CartModel:
        product = self.product_client.get_product(payload.product_id)
        self._check_product(product, payload.quantity)

        kind = payload.kind
        if kind == CartItemKind.RENT:
            if product.rental_price is None:
                raise ValidationError("Product is not available for rent")
            _check_rental_window(payload.rental_start, payload.rental_end)

        price = product.rental_price if kind == CartItemKind.RENT else product.price

        def mutate(cart: CartModel):
            existing_item = self.repo.find_item(cart.id, product.id, kind.value)

            if existing_item:
                logger.info(
                    f"Produkt {product.id} ({kind.value}) juz jest w koszyku, zwiekszam ilosc "
                    f"z {existing_item.quantity} do {existing_item.quantity + payload.quantity}"
                )
                item = existing_item
                item.quantity += payload.quantity
            else:
                logger.info(f"Dodaje nowy produkt {product.id} ({kind.value}) do koszyka {cart.id}")
                item = CartItemModel(product_id=product.id, kind=kind.value, quantity=payload.quantity)
                cart.items.append(item)

            #cena i okno najmu zawsze z ostatniego zadania
            item.unit_price = price
            if kind == CartItemKind.RENT:
                item.rental_start = payload.rental_start
                item.rental_end = payload.rental_end
                item.rental_days = rental_days(payload.rental_start, payload.rental_end)

        return self._mutate(user_id, mutate)

    def update_item(self, user_id: int, item_id: int, payload: CartItemUpdate) -> CartModel:
        changes = payload.model_dump(exclude_unset=True)

        def mutate(cart: CartModel):
            item = self.repo.get_item(cart.id, item_id)
            if not item:
                raise NotFoundError("Cart item not found")

            product = self.product_client.get_product(item.product_id)
            self._check_product(product, changes.get("quantity") or item.quantity)

            if changes.get("quantity") is not None:
                item.quantity = changes["quantity"]

            new_kind = changes.get("kind")
            if new_kind is not None and new_kind.value != item.kind:
                if self.repo.find_item(cart.id, item.product_id, new_kind.value):
                    raise ValidationError(f"Cart already contains this product as {new_kind.value}")
                item.kind = new_kind.value

            if item.kind == CartItemKind.RENT.value:
                if product.rental_price is None:
                    raise ValidationError("Product is not available for rent")
                if "rental_start" in changes:
                    item.rental_start = changes["rental_start"]
                if "rental_end" in changes:
                    item.rental_end = changes["rental_end"]
                _check_rental_window(item.rental_start, item.rental_end)
                item.unit_price = product.rental_price
                item.rental_days = rental_days(item.rental_start, item.rental_end)
            else:
                item.unit_price = product.price
                item.rental_start = None
                item.rental_end = None
                item.rental_days = None

        return self._mutate(user_id, mutate)

    def remove_item(self, user_id: int, item_id: int) -> CartModel:
        def mutate(cart: CartModel):
            item = self.repo.get_item(cart.id, item_id)
            if not item:
                raise NotFoundError("Cart item not found")

            logger.info(f"Usuwanie pozycji {item_id} (produkt {item.product_id}) z koszyka {cart.id}")
            cart.items.remove(item)

        return self._mutate(user_id, mutate)

    def clear(self, user_id: int) -> CartModel:
        def mutate(cart: CartModel):
            logger.info(f"Czyszczenie koszyka {cart.id}")
            cart.items.clear()

        return self._mutate(user_id, mutate)

    def _check_product(self, product: ProductSnapshot, quantity: int):
        if not product.is_available or not product.is_active:
            raise ValidationError("Product is not available")
        if product.stock < quantity:
            raise ValidationError("Insufficient product quantity")

    def _mutate(self, user_id: int, mutate) -> CartModel:
        """
        Wspolny szkielet komendy: zmiana pozycji, przeliczenie sum,
        warunkowe podbicie wersji i commit, wszystko w jednej transakcji.
        """

        def attempt():
            cart = self.get_or_create_cart(user_id)
            try:
                mutate(cart)
                self.repo.flush()

                totals = calculate_cart_totals(cart.items)

                # Optimistic locking
                # np w bazie update set version 2 where id 1 and version 1
                rowcount = self.repo.update_cart_version(
                    cart_id=cart.id,
                    old_version=cart.version,
                    new_data={
                        "version": cart.version + 1,
                        "total_items": totals.total_items,
                        "total_sale_price": totals.total_sale_price,
                        "total_rental_price": totals.total_rental_price,
                    },
                )
            except Exception:
                self.repo.rollback()
                raise

            if rowcount == 0:
                self.repo.rollback()
                logger.warning(f"Cart {cart.id} version {cart.version} is stale, retrying")
                raise StaleWriteError("cart version conflict")

            self.repo.commit()
            logger.info(f"Koszyk {cart.id} zapisany, nowa wersja: {cart.version}")
            return cart

        return run_with_write_retry(attempt, self.max_attempts, _CONFLICT)


def cart_line_unit_price(item: CartItemModel) -> Decimal:
    """Cena jednostkowa pozycji przy zamowieniu: najem liczony za cale okno."""
    if item.kind == CartItemKind.RENT.value:
        return (Decimal(item.unit_price) * (item.rental_days or 0)).quantize(Decimal("0.01"))
    return Decimal(item.unit_price)
