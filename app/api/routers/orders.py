# app/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_principal, get_product_client, get_notifier, get_clock, get_settings
from app.domain.schemas import CheckoutIn, OrderCreate, OrderOut, OrderStatusUpdate, Principal
from app.services.order_service import OrderService
from app.utils.settings import Settings

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    product_client=Depends(get_product_client),
    notifier=Depends(get_notifier),
    clock=Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    return OrderService(
        db=db,
        product_client=product_client,
        notifier=notifier,
        max_attempts=settings.write_conflict_max_attempts,
        order_number_attempts=settings.order_number_max_attempts,
        clock=clock,
    )


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    """
    Tworzy zamówienie z listy produktów.
    Wysyła powiadomienia do sprzedawców asynchronicznie.
    """
    return svc.create_order(principal.user_id, payload)


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn | None = None,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    """
    Tworzy zamówienie z koszyka i czyści koszyk.
    """
    return svc.checkout(principal.user_id, payload or CheckoutIn())


@router.get("/my-orders", response_model=List[OrderOut])
def my_orders(
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    return svc.list_by_buyer(principal.user_id)


@router.get("/seller-orders", response_model=List[OrderOut])
def seller_orders(
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    return svc.list_by_seller(principal.user_id)


@router.get("/", response_model=List[OrderOut])
def all_orders(
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    return svc.list_all(principal.role)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    return svc.get_order(order_id, principal.user_id)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_service),
):
    return svc.update_status(order_id, principal.user_id, payload.status)
