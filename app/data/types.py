# app/data/types.py
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from app.utils.clock import as_utc


class UTCDateTime(TypeDecorator):
    """
    DateTime zapisywany zawsze w UTC.
    sqlite gubi strefe czasowa, wiec przy odczycie doklejamy UTC z powrotem.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)
