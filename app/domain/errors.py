# app/domain/errors.py


class MarketplaceError(Exception):
    """Bazowy blad domeny: stabilny `kind` + czytelny komunikat."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MarketplaceError):
    kind = "validation_error"
    status_code = 400


class AuthError(MarketplaceError):
    kind = "unauthorized"
    status_code = 401


class ForbiddenError(MarketplaceError):
    kind = "forbidden"
    status_code = 403


class NotFoundError(MarketplaceError):
    kind = "not_found"
    status_code = 404


class ConflictError(MarketplaceError):
    kind = "conflict"
    status_code = 409


class InvalidTransitionError(ConflictError):
    kind = "invalid_transition"


class DependencyFailureError(MarketplaceError):
    kind = "dependency_failure"
    status_code = 502


class StaleWriteError(Exception):
    """Wewnetrzny sygnal przegranego wyscigu, zamieniany na ConflictError po retry."""
