# app/api/routers/health.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.api.deps import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}


@router.get("/health/ready")
def ready(request: Request, db: Session = Depends(get_db)):
    """
    Gotowosc: baza musi dzialac, broker tylko raportujemy
    (powiadomienia i tak sa fire-and-forget).
    """
    db.execute(text("SELECT 1"))
    broker = request.app.state.broker_probe.is_alive()
    return {"status": "ok", "database": "up", "broker": "up" if broker else "down"}
