# app/services/identity_service.py
from datetime import timedelta

from jose import jwt, JWTError
from pydantic import ValidationError as SchemaError

from app.domain.enums import Role
from app.domain.errors import AuthError
from app.domain.schemas import Principal
from app.utils.clock import utcnow
from app.utils.settings import Settings
from app.utils.logging import get_logger

logger = get_logger(__name__)


class IdentityService:
    """
    Weryfikacja tokenow JWT wystawionych przez serwis auth.
    sub = id usera, role = rola.
    """

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.expires_minutes = settings.jwt_expires_minutes

    def issue_token(self, user_id: int, role: Role = Role.FARMER) -> str:
        expire = utcnow() + timedelta(minutes=self.expires_minutes)
        payload = {"sub": str(user_id), "role": role.value, "exp": expire}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def authenticate(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info(f"Rejected token: {e}")
            raise AuthError("Could not validate credentials") from e

        sub = payload.get("sub")
        if sub is None:
            raise AuthError("Could not validate credentials")

        try:
            return Principal(user_id=int(sub), role=payload.get("role", Role.FARMER.value))
        except (ValueError, SchemaError) as e:
            raise AuthError("Could not validate credentials") from e
