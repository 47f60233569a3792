# app/utils/logging.py
import logging
import os

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_root() -> None:
    root = logging.getLogger()
    #handler tylko raz, uvicorn/celery moga miec swoje
    if any(getattr(h, "_marketplace", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._marketplace = True
    root.addHandler(handler)
    root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def get_logger(name: str) -> logging.Logger:
    _configure_root()
    return logging.getLogger(name)
