# app/api/deps.py
from typing import Iterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.domain.errors import AuthError
from app.domain.schemas import Principal
from app.utils.settings import Settings

bearer_scheme = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_product_client(request: Request):
    return request.app.state.product_client


def get_notifier(request: Request):
    return request.app.state.notifier


def get_clock(request: Request):
    return request.app.state.clock


def get_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    if credentials is None:
        raise AuthError("Not authenticated")
    return request.app.state.identity.authenticate(credentials.credentials)
