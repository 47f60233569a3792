# app/api/routers/addresses.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_principal, get_settings
from app.domain.schemas import AddressCreate, AddressUpdate, AddressOut, Principal
from app.services.address_service import AddressService
from app.utils.settings import Settings

router = APIRouter(prefix="/addresses", tags=["addresses"])


def get_service(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    return AddressService(db, max_attempts=settings.write_conflict_max_attempts)


@router.post("/", response_model=AddressOut, status_code=201)
def create_address(
    payload: AddressCreate,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_service),
):
    return svc.create_address(principal.user_id, payload)


@router.get("/", response_model=List[AddressOut])
def list_addresses(
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_service),
):
    return svc.list_addresses(principal.user_id)


@router.get("/active", response_model=AddressOut | None)
def get_active_address(
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_service),
):
    return svc.get_active(principal.user_id)


@router.get("/{address_id}", response_model=AddressOut)
def get_address(
    address_id: int,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_service),
):
    return svc.get_address(principal.user_id, address_id)


@router.patch("/{address_id}", response_model=AddressOut)
def update_address(
    address_id: int,
    payload: AddressUpdate,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_service),
):
    return svc.update_address(principal.user_id, address_id, payload)


@router.patch("/{address_id}/set-active", response_model=AddressOut)
def set_active_address(
    address_id: int,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_service),
):
    return svc.set_active(principal.user_id, address_id)


@router.delete("/{address_id}", status_code=204)
def delete_address(
    address_id: int,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_service),
):
    svc.delete_address(principal.user_id, address_id)
