# app/domain/enums.py
from enum import Enum


class Role(str, Enum):
    FARMER = "farmer"
    SUPPORT = "support"
    ADMIN = "admin"


class AddressType(str, Enum):
    HOME = "home"
    WORK = "work"
    OTHER = "other"


class CartItemKind(str, Enum):
    SALE = "sale"
    RENT = "rent"


class RentalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    RETURNED = "returned"


class RentalEvent(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    COMPLETE = "complete"
    RETURN = "return"
    RATE = "rate"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationKind(str, Enum):
    RENTAL_REQUEST = "rental_request"
    RENTAL_APPROVED = "rental_approved"
    RENTAL_REJECTED = "rental_rejected"
    RENTAL_COMPLETED = "rental_completed"
    RENTAL_RETURNED = "rental_returned"
    ORDER_UPDATE = "order_update"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
