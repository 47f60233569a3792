# app/domain/pricing.py
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from app.domain.enums import CartItemKind

SECONDS_PER_DAY = 24 * 60 * 60


def rental_days(start: datetime, end: datetime) -> int:
    """Liczba dni najmu, kazdy rozpoczety dzien liczy sie w calosci."""
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def rental_amount(daily_rate: Decimal, days: int) -> Decimal:
    return (Decimal(daily_rate) * days).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class CartTotals:
    total_items: int
    total_sale_price: Decimal
    total_rental_price: Decimal


def calculate_cart_totals(items: Iterable) -> CartTotals:
    """
    Sumy koszyka liczone zawsze od zera z pozycji, wiec ponowne
    przeliczenie daje ten sam wynik.
    """
    total_items = 0
    total_sale = Decimal("0.00")
    total_rental = Decimal("0.00")

    for item in items:
        total_items += item.quantity
        line = Decimal(item.unit_price) * item.quantity
        if item.kind == CartItemKind.RENT.value:
            total_rental += line * (item.rental_days or 0)
        else:
            total_sale += line

    return CartTotals(
        total_items=total_items,
        total_sale_price=total_sale.quantize(Decimal("0.01")),
        total_rental_price=total_rental.quantize(Decimal("0.01")),
    )
