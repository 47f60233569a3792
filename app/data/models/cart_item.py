from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.data.types import UTCDateTime


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, nullable=False)
    kind = Column(String(10), nullable=False, default="sale")  # sale, rent

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    rental_start = Column(UTCDateTime, nullable=True)
    rental_end = Column(UTCDateTime, nullable=True)
    rental_days = Column(Integer, nullable=True)

    cart = relationship("CartModel", back_populates="items")

    __table_args__ = (UniqueConstraint("cart_id", "product_id", "kind", name="u_cart_product_kind"),)
