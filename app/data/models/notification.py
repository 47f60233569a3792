from sqlalchemy import Column, Integer, String, Boolean, Index

from app.data.database import Base
from app.data.types import UTCDateTime
from app.utils.clock import utcnow


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False)
    from_user_id = Column(Integer, nullable=True)

    title = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)
    type = Column(String(40), nullable=False)
    priority = Column(String(10), nullable=False, default="medium")

    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(UTCDateTime, nullable=True)

    related_product_id = Column(Integer, nullable=True)
    related_rental_request_id = Column(Integer, nullable=True)
    related_order_id = Column(Integer, nullable=True)
    action_url = Column(String(255), nullable=True)

    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(UTCDateTime, nullable=True)
    expires_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_notifications_user_read_created", "user_id", "is_read", "created_at"),
        Index("ix_notifications_expires_at", "expires_at"),
    )
