from sqlalchemy import Column, Integer, String, Numeric, Boolean, Text, Index

from app.data.database import Base
from app.data.types import UTCDateTime
from app.utils.clock import utcnow


class RentalRequestModel(Base):
    __tablename__ = "rental_requests"

    id = Column(Integer, primary_key=True)
    requester_id = Column(Integer, nullable=False)
    owner_id = Column(Integer, nullable=False)
    product_id = Column(Integer, nullable=False)
    delivery_address_id = Column(Integer, nullable=False)

    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=False)
    rental_days = Column(Integer, nullable=False)
    #stawka i kwota zamrozone w momencie utworzenia
    daily_rate = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)

    status = Column(String(20), nullable=False, default="pending")
    message = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    approved_at = Column(UTCDateTime, nullable=True)
    delivered_at = Column(UTCDateTime, nullable=True)
    returned_at = Column(UTCDateTime, nullable=True)
    is_delivered = Column(Boolean, nullable=False, default=False)
    is_returned = Column(Boolean, nullable=False, default=False)

    delivery_notes = Column(Text, nullable=True)
    return_notes = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)
    review = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_rental_requests_product_status", "product_id", "status"),
        Index("ix_rental_requests_requester_status", "requester_id", "status"),
        Index("ix_rental_requests_owner_status", "owner_id", "status"),
    )
