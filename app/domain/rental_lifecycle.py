"""
Cykl zycia zgloszenia najmu.

Jedyne dozwolone przejscia statusow, kto moze je wywolac
i jakie powiadomienie idzie po udanym przejsciu. Bez zapisow do bazy.
"""

from dataclasses import dataclass
from enum import Enum

from app.domain.enums import RentalEvent, RentalStatus, NotificationKind
from app.domain.errors import ForbiddenError, InvalidTransitionError


class Party(str, Enum):
    REQUESTER = "requester"
    OWNER = "owner"


@dataclass(frozen=True)
class Transition:
    actor: Party
    source: RentalStatus
    target: RentalStatus | None  # None = bez zmiany statusu (ocena)
    notify: NotificationKind | None = None


TRANSITIONS = {
    RentalEvent.APPROVE: Transition(
        Party.OWNER, RentalStatus.PENDING, RentalStatus.APPROVED, NotificationKind.RENTAL_APPROVED
    ),
    RentalEvent.REJECT: Transition(
        Party.OWNER, RentalStatus.PENDING, RentalStatus.REJECTED, NotificationKind.RENTAL_REJECTED
    ),
    RentalEvent.CANCEL: Transition(
        Party.REQUESTER, RentalStatus.PENDING, RentalStatus.CANCELLED
    ),
    RentalEvent.COMPLETE: Transition(
        Party.OWNER, RentalStatus.APPROVED, RentalStatus.COMPLETED, NotificationKind.RENTAL_COMPLETED
    ),
    RentalEvent.RETURN: Transition(
        Party.OWNER, RentalStatus.COMPLETED, RentalStatus.RETURNED, NotificationKind.RENTAL_RETURNED
    ),
    RentalEvent.RATE: Transition(
        Party.REQUESTER, RentalStatus.RETURNED, None
    ),
}

# tylko te statusy blokuja termin dla innych zgloszen
BLOCKING_STATES = (
    RentalStatus.PENDING,
    RentalStatus.APPROVED,
)

# notatki dostawy/zwrotu niedozwolone po odrzuceniu lub anulowaniu
NOTES_LOCKED_STATES = {
    RentalStatus.REJECTED,
    RentalStatus.CANCELLED,
}


def resolve_party(*, requester_id: int, owner_id: int, actor_id: int) -> Party | None:
    if actor_id == owner_id:
        return Party.OWNER
    if actor_id == requester_id:
        return Party.REQUESTER
    return None


def validate_transition(*, event: RentalEvent, party: Party, status: RentalStatus) -> Transition:
    """Najpierw rola (Forbidden), potem biezacy status (InvalidTransition)."""
    rule = TRANSITIONS[event]

    if party != rule.actor:
        raise ForbiddenError(f"Only the {rule.actor.value} can {event.value} this rental request")

    if status != rule.source:
        raise InvalidTransitionError(
            f"Cannot {event.value} a rental request that is {status.value}; "
            f"it must be {rule.source.value}"
        )

    return rule

