# app/repos/notification_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import select, update, delete, func, case
from sqlalchemy.orm import Session

from app.data.models.notification import NotificationModel

_PRIORITY_RANK = case(
    (NotificationModel.priority == "urgent", 4),
    (NotificationModel.priority == "high", 3),
    (NotificationModel.priority == "medium", 2),
    else_=1,
)


class NotificationRepo:
    def __init__(self, db: Session):
        self.db = db

    def create(self, notification: NotificationModel) -> NotificationModel:
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def get_for_user(self, notification_id: int, user_id: int) -> NotificationModel | None:
        return self.db.execute(
            select(NotificationModel).where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
                NotificationModel.is_deleted.is_(False),
            )
        ).scalar_one_or_none()

    def list_for_user(self, user_id: int, limit: int, skip: int) -> List[NotificationModel]:
        return list(
            self.db.execute(
                select(NotificationModel)
                .where(NotificationModel.user_id == user_id, NotificationModel.is_deleted.is_(False))
                .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
                .offset(skip)
                .limit(limit)
            ).scalars()
        )

    def list_unread(self, user_id: int) -> List[NotificationModel]:
        return list(
            self.db.execute(
                select(NotificationModel)
                .where(
                    NotificationModel.user_id == user_id,
                    NotificationModel.is_read.is_(False),
                    NotificationModel.is_deleted.is_(False),
                )
                .order_by(_PRIORITY_RANK.desc(), NotificationModel.created_at.desc(), NotificationModel.id.desc())
            ).scalars()
        )

    def count_unread(self, user_id: int) -> int:
        return self.db.execute(
            select(func.count(NotificationModel.id)).where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
                NotificationModel.is_deleted.is_(False),
            )
        ).scalar_one()

    def mark_all_read(self, user_id: int, now: datetime) -> int:
        result = self.db.execute(
            update(NotificationModel)
            .where(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
            .values(is_read=True, read_at=now)
        )
        return result.rowcount

    def soft_delete_all(self, user_id: int, now: datetime) -> int:
        result = self.db.execute(
            update(NotificationModel)
            .where(NotificationModel.user_id == user_id, NotificationModel.is_deleted.is_(False))
            .values(is_deleted=True, deleted_at=now)
        )
        return result.rowcount

    def delete_expired(self, now: datetime) -> int:
        result = self.db.execute(
            delete(NotificationModel).where(
                NotificationModel.expires_at.is_not(None),
                NotificationModel.expires_at < now,
            )
        )
        return result.rowcount

    def commit(self):
        self.db.commit()
