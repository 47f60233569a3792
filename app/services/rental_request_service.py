# app/services/rental_request_service.py
from typing import Callable, Dict, Any, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.rental_request import RentalRequestModel
from app.domain.enums import RentalEvent, RentalStatus, NotificationKind
from app.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    StaleWriteError,
    ValidationError,
)
from app.domain.pricing import rental_days, rental_amount
from app.domain.rental_lifecycle import (
    NOTES_LOCKED_STATES,
    resolve_party,
    validate_transition,
)
from app.domain.schemas import RentalRequestCreate, RentalTransitionIn, RentalNotesIn
from app.repos.rental_request_repo import RentalRequestRepo
from app.services.address_service import AddressService
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.product_client import ProductClient
from app.utils.clock import utcnow
from app.utils.retry import run_with_write_retry
from app.utils.logging import get_logger

logger = get_logger(__name__)


class RentalRequestService:
    """
    Silnik zgloszen najmu.

    commands: create, transition (approve/reject/cancel/complete/return/rate),
    annotate, delete_if_pending
    query: get_by_id, list_by_requester, list_by_owner, stats

    Tworzenie: walidacja produktu/adresu/dat, potem check-then-insert
    serializowany wersja kalendarza produktu. Przejscia to warunkowe
    update'y po oczekiwanym statusie. Powiadomienia dopiero po commicie.
    """

    def __init__(
        self,
        db: Session,
        product_client: ProductClient,
        notifier: NotificationDispatcher,
        max_attempts: int = 3,
        clock: Callable = utcnow,
    ):
        self.repo = RentalRequestRepo(db)
        self.addresses = AddressService(db, max_attempts=max_attempts)
        self.product_client = product_client
        self.notifier = notifier
        self.max_attempts = max_attempts
        self.clock = clock

    #query
    def get_by_id(self, request_id: int, user_id: int) -> RentalRequestModel:
        request = self.repo.get_for_party(request_id, user_id)
        if not request:
            raise NotFoundError("Rental request not found")
        return request

    def list_by_requester(self, user_id: int) -> List[RentalRequestModel]:
        return self.repo.list_by_requester(user_id)

    def list_by_owner(self, user_id: int) -> List[RentalRequestModel]:
        return self.repo.list_by_owner(user_id)

    def stats(self, user_id: int) -> Dict[str, Dict[str, int]]:
        return {
            "as_requester": self.repo.count_by_status(RentalRequestModel.requester_id, user_id),
            "as_owner": self.repo.count_by_status(RentalRequestModel.owner_id, user_id),
        }

    #commands
    def create_rental_request(self, requester_id: int, payload: RentalRequestCreate) -> RentalRequestModel:
        product = self.product_client.get_product(payload.product_id)

        if product.owner_id == requester_id:
            raise ValidationError("Cannot rent your own product")

        if product.rental_price is None:
            raise ValidationError("Product is not available for rent")

        if not product.is_available or not product.is_active:
            raise ValidationError("Product is not available")

        try:
            self.addresses.get_address(requester_id, payload.delivery_address_id)
        except NotFoundError:
            raise NotFoundError("Delivery address not found")

        start, end = payload.start_date, payload.end_date
        if start <= self.clock():
            raise ValidationError("Start date must be in the future")
        if end <= start:
            raise ValidationError("End date must be after start date")

        days = rental_days(start, end)
        daily_rate = product.rental_price
        total_amount = rental_amount(daily_rate, days)

        self._ensure_calendar(product.id)

        def attempt():
            calendar = self.repo.get_calendar(product.id)
            try:
                clash = self.repo.find_overlapping(product.id, start, end)
                if clash:
                    logger.info(
                        f"Rental request for product {product.id} [{start} - {end}] "
                        f"overlaps request {clash.id}"
                    )
                    raise ConflictError("Product is already requested/rented for this period")

                request = self.repo.add(
                    RentalRequestModel(
                        requester_id=requester_id,
                        owner_id=product.owner_id,
                        product_id=product.id,
                        delivery_address_id=payload.delivery_address_id,
                        start_date=start,
                        end_date=end,
                        rental_days=days,
                        daily_rate=daily_rate,
                        total_amount=total_amount,
                        status=RentalStatus.PENDING.value,
                        message=payload.message,
                        is_delivered=False,
                        is_returned=False,
                    )
                )

                # insert i podbicie wersji kalendarza w jednej transakcji
                rowcount = self.repo.bump_calendar(product.id, calendar.version)
            except Exception:
                self.repo.rollback()
                raise

            if rowcount == 0:
                self.repo.rollback()
                logger.warning(f"Calendar of product {product.id} changed concurrently, re-checking")
                raise StaleWriteError("rental calendar conflict")

            self.repo.commit()
            return request

        created = run_with_write_retry(
            attempt, self.max_attempts, "Product is already requested/rented for this period"
        )
        logger.info(
            f"Rental request {created.id} created by user {requester_id} for product {product.id}: "
            f"{days} days x {daily_rate} = {total_amount}"
        )

        self._notify(NotificationKind.RENTAL_REQUEST, created.owner_id, created, from_user_id=requester_id)
        return created

    def transition(
        self,
        request_id: int,
        actor_id: int,
        event: RentalEvent,
        args: RentalTransitionIn | None = None,
    ) -> RentalRequestModel:
        args = args or RentalTransitionIn()
        request = self.get_by_id(request_id, actor_id)

        party = resolve_party(requester_id=request.requester_id, owner_id=request.owner_id, actor_id=actor_id)
        rule = validate_transition(event=event, party=party, status=RentalStatus(request.status))
        values = self._effect(event, args)

        try:
            rowcount = self.repo.apply_transition(request.id, rule.source, values)
        except Exception:
            self.repo.rollback()
            raise

        if rowcount == 0:
            #ktos zmienil status miedzy odczytem a zapisem
            self.repo.rollback()
            raise InvalidTransitionError(
                f"Cannot {event.value} this rental request, its status has changed"
            )

        self.repo.commit()
        self.repo.refresh(request)

        logger.info(
            f"Rental request {request.id}: {event.value} by {party.value} {actor_id} "
            f"({rule.source.value} -> {request.status})"
        )

        if rule.notify:
            self._notify(rule.notify, request.requester_id, request, from_user_id=actor_id)

        return request

    def annotate(self, request_id: int, actor_id: int, payload: RentalNotesIn) -> RentalRequestModel:
        """Notatki dostawy/zwrotu, tylko wlasciciel, nie w stanie odrzuconym/anulowanym."""
        request = self.get_by_id(request_id, actor_id)

        if actor_id != request.owner_id:
            raise ForbiddenError("Only the owner can add delivery or return notes")

        if RentalStatus(request.status) in NOTES_LOCKED_STATES:
            raise InvalidTransitionError(f"Cannot annotate a rental request that is {request.status}")

        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            return request

        try:
            for key, value in changes.items():
                setattr(request, key, value)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Rental request {request.id}: notes updated by owner {actor_id}")
        return request

    def delete_if_pending(self, request_id: int, requester_id: int) -> None:
        request = self.get_by_id(request_id, requester_id)

        if request.requester_id != requester_id:
            raise ForbiddenError("Only the requester can delete this rental request")

        if request.status != RentalStatus.PENDING.value:
            raise InvalidTransitionError(f"Cannot delete a rental request that is {request.status}")

        try:
            rowcount = self.repo.delete_pending(request.id)
        except Exception:
            self.repo.rollback()
            raise

        if rowcount == 0:
            self.repo.rollback()
            raise InvalidTransitionError("Cannot delete this rental request, its status has changed")

        self.repo.commit()
        logger.info(f"Rental request {request_id} deleted by requester {requester_id}")

    def _effect(self, event: RentalEvent, args: RentalTransitionIn) -> Dict[str, Any]:
        now = self.clock()

        if event == RentalEvent.APPROVE:
            return {"status": RentalStatus.APPROVED.value, "approved_at": now}

        if event == RentalEvent.REJECT:
            reason = (args.rejection_reason or "").strip()
            if not reason:
                raise ValidationError("Rejection reason is required")
            return {"status": RentalStatus.REJECTED.value, "rejection_reason": reason}

        if event == RentalEvent.CANCEL:
            return {"status": RentalStatus.CANCELLED.value}

        if event == RentalEvent.COMPLETE:
            return {"status": RentalStatus.COMPLETED.value, "delivered_at": now, "is_delivered": True}

        if event == RentalEvent.RETURN:
            return {"status": RentalStatus.RETURNED.value, "returned_at": now, "is_returned": True}

        # RATE
        if args.rating is None and args.review is None:
            raise ValidationError("Rating or review is required")
        values = {}
        if args.rating is not None:
            if args.rating < 1 or args.rating > 5:
                raise ValidationError("Rating must be between 1 and 5")
            values["rating"] = args.rating
        if args.review is not None:
            values["review"] = args.review
        return values

    def _ensure_calendar(self, product_id: int):
        if self.repo.get_calendar(product_id) is not None:
            return
        try:
            self.repo.create_calendar(product_id)
        except IntegrityError:
            #utworzony rownolegle
            self.repo.rollback()

    def _notify(self, kind: NotificationKind, recipient_id: int, request: RentalRequestModel, from_user_id: int):
        payload = {
            "from_user_id": from_user_id,
            "product_id": request.product_id,
            "rental_request_id": request.id,
        }
        try:
            self.notifier.emit(kind, recipient_id, payload)
        except Exception:
            #zapis juz zacommitowany, blad powiadomienia tylko logujemy
            logger.exception(f"Rental request {request.id}: {kind.value} notification for user {recipient_id} failed")
