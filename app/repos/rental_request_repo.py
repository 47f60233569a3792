# app/repos/rental_request_repo.py
from datetime import datetime
from typing import Dict, Any, List

from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.orm import Session

from app.data.models.rental_request import RentalRequestModel
from app.data.models.rental_calendar import RentalCalendarModel
from app.domain.enums import RentalStatus
from app.domain.rental_lifecycle import BLOCKING_STATES


class RentalRequestRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_for_party(self, request_id: int, user_id: int) -> RentalRequestModel | None:
        return self.db.execute(
            select(RentalRequestModel).where(
                RentalRequestModel.id == request_id,
                or_(
                    RentalRequestModel.requester_id == user_id,
                    RentalRequestModel.owner_id == user_id,
                ),
            )
        ).scalar_one_or_none()

    def list_by_requester(self, user_id: int) -> List[RentalRequestModel]:
        return list(
            self.db.execute(
                select(RentalRequestModel)
                .where(RentalRequestModel.requester_id == user_id)
                .order_by(RentalRequestModel.created_at.desc(), RentalRequestModel.id.desc())
            ).scalars()
        )

    def list_by_owner(self, user_id: int) -> List[RentalRequestModel]:
        return list(
            self.db.execute(
                select(RentalRequestModel)
                .where(RentalRequestModel.owner_id == user_id)
                .order_by(RentalRequestModel.created_at.desc(), RentalRequestModel.id.desc())
            ).scalars()
        )

    def find_overlapping(self, product_id: int, start: datetime, end: datetime) -> RentalRequestModel | None:
        # existing.start <= new.end and existing.end >= new.start
        return self.db.execute(
            select(RentalRequestModel)
            .where(
                RentalRequestModel.product_id == product_id,
                RentalRequestModel.status.in_([s.value for s in BLOCKING_STATES]),
                RentalRequestModel.start_date <= end,
                RentalRequestModel.end_date >= start,
            )
            .limit(1)
        ).scalar_one_or_none()

    def count_by_status(self, column, user_id: int) -> Dict[str, int]:
        rows = self.db.execute(
            select(RentalRequestModel.status, func.count(RentalRequestModel.id))
            .where(column == user_id)
            .group_by(RentalRequestModel.status)
        ).all()
        return {status: count for status, count in rows}

    def add(self, request: RentalRequestModel) -> RentalRequestModel:
        self.db.add(request)
        self.db.flush()
        return request

    def apply_transition(self, request_id: int, expected: RentalStatus, values: Dict[str, Any]) -> int:
        # warunkowy update: wygrywa tylko ten, kto widzi oczekiwany status
        result = self.db.execute(
            update(RentalRequestModel)
            .where(RentalRequestModel.id == request_id, RentalRequestModel.status == expected.value)
            .values(**values)
        )
        return result.rowcount

    def delete_pending(self, request_id: int) -> int:
        result = self.db.execute(
            delete(RentalRequestModel).where(
                RentalRequestModel.id == request_id,
                RentalRequestModel.status == RentalStatus.PENDING.value,
            )
        )
        return result.rowcount

    # kalendarz produktu (serializacja tworzenia zgloszen)
    def get_calendar(self, product_id: int) -> RentalCalendarModel | None:
        return self.db.get(RentalCalendarModel, product_id, populate_existing=True)

    def create_calendar(self, product_id: int) -> RentalCalendarModel:
        calendar = RentalCalendarModel(product_id=product_id, version=1)
        self.db.add(calendar)
        self.db.commit()
        return calendar

    def bump_calendar(self, product_id: int, old_version: int) -> int:
        result = self.db.execute(
            update(RentalCalendarModel)
            .where(RentalCalendarModel.product_id == product_id, RentalCalendarModel.version == old_version)
            .values(version=old_version + 1)
        )
        return result.rowcount

    def refresh(self, request: RentalRequestModel):
        self.db.refresh(request)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
