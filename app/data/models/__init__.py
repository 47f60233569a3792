#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from app.data.models.address import AddressModel
from app.data.models.address_book import AddressBookModel
from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.data.models.rental_request import RentalRequestModel
from app.data.models.rental_calendar import RentalCalendarModel
from app.data.models.notification import NotificationModel

__all__ = [
    "AddressModel",
    "AddressBookModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "RentalRequestModel",
    "RentalCalendarModel",
    "NotificationModel",
]
