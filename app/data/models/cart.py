#app/data/models/cart.py
from sqlalchemy import Column, Integer, Numeric
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.data.types import UTCDateTime
from app.utils.clock import utcnow


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    #jeden koszyk na usera
    user_id = Column(Integer, nullable=False, unique=True)

    version = Column(Integer, nullable=False, default=1)

    total_items = Column(Integer, nullable=False, default=0)
    total_sale_price = Column(Numeric(12, 2), nullable=False, default=0)
    total_rental_price = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.id",
    )
