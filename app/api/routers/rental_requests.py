# app/api/routers/rental_requests.py
from typing import List

from fastapi import APIRouter, Depends, Body
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_principal, get_product_client, get_notifier, get_clock, get_settings
from app.domain.enums import RentalEvent
from app.domain.schemas import (
    Principal,
    RentalNotesIn,
    RentalRequestCreate,
    RentalRequestOut,
    RentalStatsOut,
    RentalTransitionIn,
)
from app.services.rental_request_service import RentalRequestService
from app.utils.settings import Settings

router = APIRouter(prefix="/rental-requests", tags=["rental-requests"])


def get_service(
    db: Session = Depends(get_db),
    product_client=Depends(get_product_client),
    notifier=Depends(get_notifier),
    clock=Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    return RentalRequestService(
        db=db,
        product_client=product_client,
        notifier=notifier,
        max_attempts=settings.write_conflict_max_attempts,
        clock=clock,
    )


@router.post("/", response_model=RentalRequestOut, status_code=201)
def create_rental_request(
    payload: RentalRequestCreate,
    principal: Principal = Depends(get_principal),
    svc: RentalRequestService = Depends(get_service),
):
    return svc.create_rental_request(principal.user_id, payload)


@router.get("/my-requests", response_model=List[RentalRequestOut])
def my_requests(
    principal: Principal = Depends(get_principal),
    svc: RentalRequestService = Depends(get_service),
):
    return svc.list_by_requester(principal.user_id)


@router.get("/my-products", response_model=List[RentalRequestOut])
def my_product_requests(
    principal: Principal = Depends(get_principal),
    svc: RentalRequestService = Depends(get_service),
):
    return svc.list_by_owner(principal.user_id)


@router.get("/stats", response_model=RentalStatsOut)
def rental_stats(
    principal: Principal = Depends(get_principal),
    svc: RentalRequestService = Depends(get_service),
):
    return svc.stats(principal.user_id)


@router.get("/{request_id}", response_model=RentalRequestOut)
def get_rental_request(
    request_id: int,
    principal: Principal = Depends(get_principal),
    svc: RentalRequestService = Depends(get_service),
):
    return svc.get_by_id(request_id, principal.user_id)


@router.post("/{request_id}/{event}", response_model=RentalRequestOut)
def transition_rental_request(
    request_id: int,
    event: RentalEvent,
    args: RentalTransitionIn | None = Body(None),
    principal: Principal = Depends(get_principal),
    svc: RentalRequestService = Depends(get_service),
):
    """approve / reject / cancel / complete / return / rate"""
    return svc.transition(request_id, principal.user_id, event, args)


@router.patch("/{request_id}/notes", response_model=RentalRequestOut)
def annotate_rental_request(
    request_id: int,
    payload: RentalNotesIn,
    principal: Principal = Depends(get_principal),
    svc: RentalRequestService = Depends(get_service),
):
    return svc.annotate(request_id, principal.user_id, payload)


@router.delete("/{request_id}", status_code=204)
def delete_rental_request(
    request_id: int,
    principal: Principal = Depends(get_principal),
    svc: RentalRequestService = Depends(get_service),
):
    svc.delete_if_pending(request_id, principal.user_id)
