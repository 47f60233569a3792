#app/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_principal, get_product_client, get_settings
from app.domain.schemas import CartItemIn, CartItemUpdate, CartOut, Principal
from app.services.cart_service import CartService
from app.utils.settings import Settings

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(
    db: Session = Depends(get_db),
    product_client=Depends(get_product_client),
    settings: Settings = Depends(get_settings),
):
    return CartService(
        db=db,
        product_client=product_client,
        max_attempts=settings.write_conflict_max_attempts,
    )


@router.get("/", response_model=CartOut)
def get_cart(
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    return svc.get_cart(principal.user_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    return svc.add_item(principal.user_id, payload)


@router.patch("/items/{item_id}", response_model=CartOut)
def update_item(
    item_id: int,
    payload: CartItemUpdate,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    return svc.update_item(principal.user_id, item_id, payload)


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: int,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    return svc.remove_item(principal.user_id, item_id)


@router.delete("/", response_model=CartOut)
def clear_cart(
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_service),
):
    return svc.clear(principal.user_id)
