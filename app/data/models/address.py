from sqlalchemy import Column, Integer, String, Boolean, Index, text

from app.data.database import Base
from app.data.types import UTCDateTime
from app.utils.clock import utcnow


class AddressModel(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)

    full_name = Column(String(120), nullable=False)
    phone_number = Column(String(32), nullable=False)
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    pincode = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False)
    address_type = Column(String(20), nullable=False, default="home")

    is_active = Column(Boolean, nullable=False, default=False)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    #max jeden aktywny adres na usera, pilnowane przez baze a nie przez kod
    __table_args__ = (
        Index(
            "uq_addresses_one_active_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )
