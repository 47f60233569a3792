from sqlalchemy import Column, Integer, String, Numeric, JSON
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.data.types import UTCDateTime
from app.utils.clock import utcnow


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(40), nullable=False, unique=True)
    buyer_id = Column(Integer, nullable=False, index=True)

    status = Column(String, nullable=False, default="pending")  # pending, processing, completed, cancelled
    total_price = Column(Numeric(12, 2), nullable=False)
    shipping_address = Column(JSON, nullable=False)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
