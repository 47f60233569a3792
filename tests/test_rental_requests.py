from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from app.data.models.rental_request import RentalRequestModel
from app.domain.enums import NotificationKind, RentalEvent, RentalStatus
from app.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.domain.schemas import RentalNotesIn, RentalRequestCreate, RentalTransitionIn
from app.repos.rental_request_repo import RentalRequestRepo
from tests.conftest import NOW, OTHER, OWNER, RENTER, address_payload


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def request_for(address_id, start, end, product_id=10, message=None):
    return RentalRequestCreate(
        product_id=product_id,
        delivery_address_id=address_id,
        start_date=start,
        end_date=end,
        message=message,
    )


@pytest.fixture
def pending(rental_service, renter_address):
    return rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 1, 10), utc(2024, 1, 15))
    )


def advance(service, request, *events):
    for event in events:
        actor = RENTER if event in (RentalEvent.CANCEL, RentalEvent.RATE) else OWNER
        args = RentalTransitionIn(rejection_reason="busy", rating=5)
        request = service.transition(request.id, actor, event, args)
    return request


# ------------------------------------------------------------------ create

def test_create_fixes_amounts_and_notifies_owner(rental_service, renter_address, dispatcher):
    created = rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 1, 15), utc(2024, 1, 20), message="Na zniwa")
    )

    assert created.status == RentalStatus.PENDING.value
    assert created.owner_id == OWNER
    assert created.rental_days == 5
    assert created.daily_rate == Decimal("20.00")
    assert created.total_amount == Decimal("100.00")
    assert created.is_delivered is False and created.is_returned is False
    assert created.message == "Na zniwa"

    assert dispatcher.events == [
        (
            NotificationKind.RENTAL_REQUEST,
            OWNER,
            {"from_user_id": RENTER, "product_id": 10, "rental_request_id": created.id},
        )
    ]


def test_partial_day_is_charged_as_full_day(rental_service, renter_address):
    created = rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 1, 10), utc(2024, 1, 11, 6))
    )

    assert created.rental_days == 2
    assert created.total_amount == Decimal("40.00")


def test_overlap_scenario(rental_service, renter_address, address_service, dispatcher):
    other_address = address_service.create_address(OTHER, address_payload())

    first = rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 1, 10), utc(2024, 1, 15))
    )
    assert first.status == RentalStatus.PENDING.value

    with pytest.raises(ConflictError):
        rental_service.create_rental_request(
            OTHER, request_for(other_address.id, utc(2024, 1, 14), utc(2024, 1, 20))
        )

    third = rental_service.create_rental_request(
        OTHER, request_for(other_address.id, utc(2024, 1, 16), utc(2024, 1, 20))
    )
    assert third.status == RentalStatus.PENDING.value
    assert len(dispatcher.events) == 2


def test_touching_boundaries_overlap(rental_service, renter_address, pending):
    with pytest.raises(ConflictError):
        rental_service.create_rental_request(
            RENTER, request_for(renter_address.id, utc(2024, 1, 15), utc(2024, 1, 18))
        )


def test_other_products_do_not_block(rental_service, renter_address, pending):
    created = rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 1, 10), utc(2024, 1, 15), product_id=12)
    )
    assert created.product_id == 12


@pytest.mark.parametrize(
    "events",
    [
        (RentalEvent.REJECT,),
        (RentalEvent.CANCEL,),
        (RentalEvent.APPROVE, RentalEvent.COMPLETE),
        (RentalEvent.APPROVE, RentalEvent.COMPLETE, RentalEvent.RETURN),
    ],
    ids=["rejected", "cancelled", "completed", "returned"],
)
def test_only_pending_and_approved_block_dates(rental_service, renter_address, pending, events):
    advance(rental_service, pending, *events)

    again = rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 1, 12), utc(2024, 1, 14))
    )
    assert again.status == RentalStatus.PENDING.value


def test_approved_request_still_blocks(rental_service, renter_address, pending):
    advance(rental_service, pending, RentalEvent.APPROVE)

    with pytest.raises(ConflictError):
        rental_service.create_rental_request(
            RENTER, request_for(renter_address.id, utc(2024, 1, 12), utc(2024, 1, 14))
        )


def test_cannot_rent_own_product(rental_service, address_service):
    owner_address = address_service.create_address(OWNER, address_payload())

    with pytest.raises(ValidationError, match="own product"):
        rental_service.create_rental_request(
            OWNER, request_for(owner_address.id, utc(2024, 1, 10), utc(2024, 1, 15))
        )


@pytest.mark.parametrize(
    "product_id, error",
    [(999, NotFoundError), (11, ValidationError), (13, ValidationError)],
    ids=["unknown", "not-for-rent", "inactive"],
)
def test_product_guards(rental_service, renter_address, product_id, error):
    with pytest.raises(error):
        rental_service.create_rental_request(
            RENTER, request_for(renter_address.id, utc(2024, 1, 10), utc(2024, 1, 15), product_id=product_id)
        )


def test_foreign_delivery_address_is_not_found(rental_service, address_service):
    foreign = address_service.create_address(OTHER, address_payload())

    with pytest.raises(NotFoundError, match="Delivery address"):
        rental_service.create_rental_request(
            RENTER, request_for(foreign.id, utc(2024, 1, 10), utc(2024, 1, 15))
        )


@pytest.mark.parametrize(
    "start, end",
    [
        (NOW, utc(2024, 1, 5)),
        (utc(2023, 12, 20), utc(2024, 1, 5)),
        (utc(2024, 1, 10), utc(2024, 1, 10)),
        (utc(2024, 1, 10), utc(2024, 1, 9)),
    ],
    ids=["starts-now", "in-the-past", "empty", "reversed"],
)
def test_date_guards(rental_service, renter_address, dispatcher, start, end):
    with pytest.raises(ValidationError):
        rental_service.create_rental_request(RENTER, request_for(renter_address.id, start, end))

    assert rental_service.list_by_requester(RENTER) == []
    assert dispatcher.events == []


def test_lost_calendar_race_rechecks_and_conflicts(rental_service, renter_address, monkeypatch):
    monkeypatch.setattr(RentalRequestRepo, "bump_calendar", lambda self, product_id, old_version: 0)

    with pytest.raises(ConflictError):
        rental_service.create_rental_request(
            RENTER, request_for(renter_address.id, utc(2024, 1, 10), utc(2024, 1, 15))
        )

    monkeypatch.undo()
    assert rental_service.list_by_requester(RENTER) == []


# ------------------------------------------------------------------ transitions

def test_owner_approves(rental_service, pending, dispatcher):
    approved = rental_service.transition(pending.id, OWNER, RentalEvent.APPROVE)

    assert approved.status == RentalStatus.APPROVED.value
    assert approved.approved_at == NOW
    kind, recipient, payload = dispatcher.events[-1]
    assert kind == NotificationKind.RENTAL_APPROVED
    assert recipient == RENTER
    assert payload["rental_request_id"] == pending.id


def test_full_lifecycle(rental_service, pending, dispatcher):
    request = rental_service.transition(pending.id, OWNER, RentalEvent.APPROVE)
    request = rental_service.transition(request.id, OWNER, RentalEvent.COMPLETE)
    assert request.is_delivered and request.delivered_at == NOW

    request = rental_service.transition(request.id, OWNER, RentalEvent.RETURN)
    assert request.is_returned and request.returned_at == NOW
    assert request.status == RentalStatus.RETURNED.value

    request = rental_service.transition(
        request.id, RENTER, RentalEvent.RATE, RentalTransitionIn(rating=4, review="Sprawny sprzet")
    )
    assert request.status == RentalStatus.RETURNED.value
    assert (request.rating, request.review) == (4, "Sprawny sprzet")

    assert dispatcher.kinds() == [
        NotificationKind.RENTAL_REQUEST,
        NotificationKind.RENTAL_APPROVED,
        NotificationKind.RENTAL_COMPLETED,
        NotificationKind.RENTAL_RETURNED,
    ]


def test_reject_requires_reason(rental_service, pending, dispatcher):
    with pytest.raises(ValidationError):
        rental_service.transition(pending.id, OWNER, RentalEvent.REJECT, RentalTransitionIn(rejection_reason="  "))

    rejected = rental_service.transition(
        pending.id, OWNER, RentalEvent.REJECT, RentalTransitionIn(rejection_reason="Maszyna w serwisie")
    )
    assert rejected.status == RentalStatus.REJECTED.value
    assert rejected.rejection_reason == "Maszyna w serwisie"
    assert dispatcher.kinds()[-1] == NotificationKind.RENTAL_REJECTED


def test_cancel_sends_no_notification(rental_service, pending, dispatcher):
    cancelled = rental_service.transition(pending.id, RENTER, RentalEvent.CANCEL)

    assert cancelled.status == RentalStatus.CANCELLED.value
    assert dispatcher.kinds() == [NotificationKind.RENTAL_REQUEST]


@pytest.mark.parametrize(
    "actor, event",
    [
        (RENTER, RentalEvent.APPROVE),
        (RENTER, RentalEvent.REJECT),
        (OWNER, RentalEvent.CANCEL),
    ],
)
def test_wrong_party_is_forbidden(rental_service, pending, actor, event):
    with pytest.raises(ForbiddenError):
        rental_service.transition(pending.id, actor, event, RentalTransitionIn(rejection_reason="x"))

    assert rental_service.get_by_id(pending.id, RENTER).status == RentalStatus.PENDING.value


def test_stranger_sees_not_found(rental_service, pending):
    with pytest.raises(NotFoundError):
        rental_service.transition(pending.id, OTHER, RentalEvent.APPROVE)
    with pytest.raises(NotFoundError):
        rental_service.get_by_id(pending.id, OTHER)


@pytest.mark.parametrize(
    "history, actor, event",
    [
        ((), OWNER, RentalEvent.COMPLETE),
        ((), OWNER, RentalEvent.RETURN),
        ((), RENTER, RentalEvent.RATE),
        ((RentalEvent.APPROVE,), OWNER, RentalEvent.APPROVE),
        ((RentalEvent.APPROVE,), OWNER, RentalEvent.REJECT),
        ((RentalEvent.APPROVE,), RENTER, RentalEvent.CANCEL),
        ((RentalEvent.CANCEL,), OWNER, RentalEvent.APPROVE),
        ((RentalEvent.REJECT,), OWNER, RentalEvent.COMPLETE),
        ((RentalEvent.APPROVE, RentalEvent.COMPLETE), RENTER, RentalEvent.RATE),
    ],
)
def test_transition_from_wrong_status(rental_service, pending, history, actor, event):
    request = advance(rental_service, pending, *history)
    before = request.status

    with pytest.raises(InvalidTransitionError):
        rental_service.transition(
            request.id, actor, event, RentalTransitionIn(rejection_reason="x", rating=3)
        )

    assert rental_service.get_by_id(request.id, RENTER).status == before


def test_concurrent_status_change_wins(rental_service, pending, db, dispatcher, monkeypatch):
    original = RentalRequestRepo.apply_transition

    def racing(self, request_id, expected, values):
        # requester anuluje miedzy odczytem a zapisem
        self.db.execute(
            update(RentalRequestModel)
            .where(RentalRequestModel.id == request_id)
            .values(status=RentalStatus.CANCELLED.value)
        )
        return original(self, request_id, expected, values)

    monkeypatch.setattr(RentalRequestRepo, "apply_transition", racing)

    with pytest.raises(InvalidTransitionError):
        rental_service.transition(pending.id, OWNER, RentalEvent.APPROVE)

    monkeypatch.undo()
    assert dispatcher.kinds() == [NotificationKind.RENTAL_REQUEST]


@pytest.mark.parametrize(
    "args",
    [RentalTransitionIn(), RentalTransitionIn(rating=0), RentalTransitionIn(rating=6)],
    ids=["nothing", "too-low", "too-high"],
)
def test_rating_validation(rental_service, pending, args):
    returned = advance(rental_service, pending, RentalEvent.APPROVE, RentalEvent.COMPLETE, RentalEvent.RETURN)

    with pytest.raises(ValidationError):
        rental_service.transition(returned.id, RENTER, RentalEvent.RATE, args)


def test_review_without_rating(rental_service, pending):
    returned = advance(rental_service, pending, RentalEvent.APPROVE, RentalEvent.COMPLETE, RentalEvent.RETURN)

    rated = rental_service.transition(returned.id, RENTER, RentalEvent.RATE, RentalTransitionIn(review="OK"))
    assert rated.review == "OK"
    assert rated.rating is None


def broken_sink(kind, recipient_id, payload):
    raise ConnectionError("sink down")


def test_notification_failure_does_not_undo_transition(rental_service, pending, monkeypatch, caplog):
    monkeypatch.setattr(rental_service.notifier, "emit", broken_sink)

    approved = rental_service.transition(pending.id, OWNER, RentalEvent.APPROVE)

    assert approved.status == RentalStatus.APPROVED.value
    assert rental_service.get_by_id(pending.id, OWNER).status == RentalStatus.APPROVED.value
    assert "rental_approved notification" in caplog.text


def test_notification_failure_does_not_undo_create(rental_service, renter_address, monkeypatch):
    monkeypatch.setattr(rental_service.notifier, "emit", broken_sink)

    created = rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 1, 10), utc(2024, 1, 15))
    )

    assert created.status == RentalStatus.PENDING.value
    assert [r.id for r in rental_service.list_by_requester(RENTER)] == [created.id]


# ------------------------------------------------------------------ notes, delete, queries

def test_owner_annotates(rental_service, pending):
    approved = advance(rental_service, pending, RentalEvent.APPROVE)

    noted = rental_service.annotate(approved.id, OWNER, RentalNotesIn(delivery_notes="Brama od podworza"))

    assert noted.delivery_notes == "Brama od podworza"
    assert noted.return_notes is None


def test_requester_cannot_annotate(rental_service, pending):
    with pytest.raises(ForbiddenError):
        rental_service.annotate(pending.id, RENTER, RentalNotesIn(delivery_notes="x"))


@pytest.mark.parametrize("event", [RentalEvent.REJECT, RentalEvent.CANCEL])
def test_notes_locked_after_reject_or_cancel(rental_service, pending, event):
    closed = advance(rental_service, pending, event)

    with pytest.raises(InvalidTransitionError):
        rental_service.annotate(closed.id, OWNER, RentalNotesIn(return_notes="x"))


def test_delete_pending_by_requester(rental_service, pending):
    rental_service.delete_if_pending(pending.id, RENTER)

    with pytest.raises(NotFoundError):
        rental_service.get_by_id(pending.id, RENTER)


def test_delete_rules(rental_service, pending):
    with pytest.raises(ForbiddenError):
        rental_service.delete_if_pending(pending.id, OWNER)
    with pytest.raises(NotFoundError):
        rental_service.delete_if_pending(pending.id, OTHER)

    approved = advance(rental_service, pending, RentalEvent.APPROVE)
    with pytest.raises(InvalidTransitionError):
        rental_service.delete_if_pending(approved.id, RENTER)


def test_deleted_request_frees_dates(rental_service, renter_address, pending):
    rental_service.delete_if_pending(pending.id, RENTER)

    again = rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 1, 10), utc(2024, 1, 15))
    )
    assert again.status == RentalStatus.PENDING.value
    assert len(rental_service.list_by_requester(RENTER)) == 1


def test_amount_is_frozen_when_catalog_price_changes(rental_service, catalog, pending):
    assert pending.total_amount == Decimal("100.00")

    catalog.products[10] = catalog.products[10].model_copy(update={"rental_price": Decimal("99.00")})
    approved = rental_service.transition(pending.id, OWNER, RentalEvent.APPROVE)

    assert approved.daily_rate == Decimal("20.00")
    assert approved.total_amount == Decimal("100.00")
    assert rental_service.get_by_id(pending.id, RENTER).total_amount == Decimal("100.00")


def test_lists_and_stats(rental_service, renter_address, pending):
    second = rental_service.create_rental_request(
        RENTER, request_for(renter_address.id, utc(2024, 2, 1), utc(2024, 2, 3))
    )
    advance(rental_service, second, RentalEvent.APPROVE)

    assert [r.id for r in rental_service.list_by_requester(RENTER)] == [second.id, pending.id]
    assert [r.id for r in rental_service.list_by_owner(OWNER)] == [second.id, pending.id]
    assert rental_service.list_by_owner(RENTER) == []

    stats = rental_service.stats(RENTER)
    assert stats["as_requester"] == {"pending": 1, "approved": 1}
    assert stats["as_owner"] == {}
    assert rental_service.stats(OWNER)["as_owner"] == {"pending": 1, "approved": 1}
