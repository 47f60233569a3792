# app/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import requests

from app.domain.errors import ConflictError, StaleWriteError


class RetryableHTTPError(requests.RequestException):
    """5xx z product-service, traktowany jak blad sieci."""


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
    )


def write_retry(exc_type, attempts: int):
    """
    Ponawianie optymistycznych zapisow (konflikt wersji / unique index).
    Po wyczerpaniu prob ostatni wyjatek leci dalej (reraise).
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        retry=retry_if_exception_type(exc_type),
    )


def run_with_write_retry(operation, attempts: int, conflict_message: str):
    """
    Uruchamia operacje, ponawiajac ja przy StaleWriteError.
    Po wyczerpaniu prob zamienia blad na ConflictError.
    """
    retrying = write_retry(StaleWriteError, attempts)(operation)
    try:
        return retrying()
    except StaleWriteError as e:
        raise ConflictError(conflict_message) from e
