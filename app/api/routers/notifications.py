# app/api/routers/notifications.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_principal, get_settings
from app.domain.schemas import NotificationOut, Principal, UnreadCountOut
from app.services.notification_service import NotificationService
from app.utils.settings import Settings

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_service(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    return NotificationService(db, ttl_days=settings.notification_ttl_days)


@router.get("/", response_model=List[NotificationOut])
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(get_service),
):
    return svc.list_for_user(principal.user_id, limit=limit, skip=skip)


@router.get("/unread", response_model=List[NotificationOut])
def list_unread(
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(get_service),
):
    return svc.list_unread(principal.user_id)


@router.get("/unread-count", response_model=UnreadCountOut)
def unread_count(
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(get_service),
):
    return {"count": svc.unread_count(principal.user_id)}


@router.patch("/mark-all-read", status_code=204)
def mark_all_read(
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(get_service),
):
    svc.mark_all_read(principal.user_id)


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: int,
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(get_service),
):
    return svc.mark_read(notification_id, principal.user_id)


@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: int,
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(get_service),
):
    svc.delete(notification_id, principal.user_id)


@router.delete("/", status_code=204)
def delete_all_notifications(
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(get_service),
):
    svc.delete_all(principal.user_id)
