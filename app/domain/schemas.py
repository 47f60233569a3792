# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Dict, Optional
from decimal import Decimal
from datetime import datetime

from app.domain.enums import (
    Role,
    AddressType,
    CartItemKind,
    RentalStatus,
    OrderStatus,
    NotificationKind,
    NotificationPriority,
)
from app.utils.clock import as_utc


class Principal(BaseModel):
    """Uwierzytelniony uzytkownik (z tokena JWT)."""

    user_id: int
    role: Role


class ProductSnapshot(BaseModel):
    """Stan produktu z product-service."""

    id: int
    owner_id: int
    title: str = ""
    price: Decimal = Field(..., ge=0)
    rental_price: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True
    is_available: bool = True
    stock: int = Field(0, ge=0)


# ---------------------------------------------------------------- addresses

class AddressFields(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=120)
    phone_number: str = Field(..., min_length=3, max_length=32)
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    address_type: AddressType = AddressType.HOME


class AddressCreate(AddressFields):
    is_active: bool = False


class AddressUpdate(BaseModel):
    """Wszystkie pola opcjonalne; is_active tylko gdy podane jawnie."""

    full_name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone_number: Optional[str] = Field(None, min_length=3, max_length=32)
    address_line1: Optional[str] = Field(None, min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    pincode: Optional[str] = Field(None, min_length=1, max_length=20)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    address_type: Optional[AddressType] = None
    is_active: Optional[bool] = None


class AddressOut(AddressFields):
    id: int
    user_id: int
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- cart

class _UTCDates(BaseModel):
    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, value):
        if isinstance(value, datetime):
            return as_utc(value)
        return value


class CartItemIn(_UTCDates):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    kind: CartItemKind = CartItemKind.SALE
    rental_start: Optional[datetime] = None
    rental_end: Optional[datetime] = None


class CartItemUpdate(_UTCDates):
    quantity: Optional[int] = Field(None, gt=0)
    kind: Optional[CartItemKind] = None
    rental_start: Optional[datetime] = None
    rental_end: Optional[datetime] = None


class CartItemOut(BaseModel):
    id: int
    product_id: int
    kind: CartItemKind
    quantity: int
    unit_price: Decimal
    rental_start: Optional[datetime] = None
    rental_end: Optional[datetime] = None
    rental_days: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    id: int
    user_id: int
    items: List[CartItemOut]
    total_items: int
    total_sale_price: Decimal
    total_rental_price: Decimal

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- rental requests

class RentalRequestCreate(_UTCDates):
    product_id: int = Field(..., gt=0)
    delivery_address_id: int = Field(..., gt=0)
    start_date: datetime
    end_date: datetime
    message: Optional[str] = Field(None, max_length=500)


class RentalTransitionIn(BaseModel):
    """Argumenty przejscia; ktore sa wymagane zalezy od zdarzenia."""

    rejection_reason: Optional[str] = Field(None, max_length=500)
    rating: Optional[int] = None
    review: Optional[str] = Field(None, max_length=1000)


class RentalNotesIn(BaseModel):
    delivery_notes: Optional[str] = Field(None, max_length=1000)
    return_notes: Optional[str] = Field(None, max_length=1000)


class RentalRequestOut(BaseModel):
    id: int
    requester_id: int
    owner_id: int
    product_id: int
    delivery_address_id: int
    start_date: datetime
    end_date: datetime
    rental_days: int
    daily_rate: Decimal
    total_amount: Decimal
    status: RentalStatus
    message: Optional[str] = None
    rejection_reason: Optional[str] = None
    approved_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    is_delivered: bool
    is_returned: bool
    delivery_notes: Optional[str] = None
    return_notes: Optional[str] = None
    rating: Optional[int] = None
    review: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RentalStatsOut(BaseModel):
    as_requester: Dict[str, int]
    as_owner: Dict[str, int]


# ---------------------------------------------------------------- orders

class ShippingAddress(BaseModel):
    full_name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=3)
    address_line1: str = Field(..., min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., min_length=1)
    country: Optional[str] = None
    address_type: Optional[str] = None


class OrderItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseModel):
    """Schema dla tworzenia zamowienia z listy produktow."""

    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: Optional[ShippingAddress] = None


class CheckoutIn(BaseModel):
    shipping_address: Optional[ShippingAddress] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    product_id: int
    seller_id: int
    quantity: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    order_number: str
    buyer_id: int
    items: List[OrderItemOut]
    total_price: Decimal
    status: OrderStatus
    shipping_address: dict
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- notifications

class NotificationOut(BaseModel):
    id: int
    user_id: int
    from_user_id: Optional[int] = None
    title: str
    message: str
    type: NotificationKind
    priority: NotificationPriority
    is_read: bool
    read_at: Optional[datetime] = None
    related_product_id: Optional[int] = None
    related_rental_request_id: Optional[int] = None
    related_order_id: Optional[int] = None
    action_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnreadCountOut(BaseModel):
    count: int
