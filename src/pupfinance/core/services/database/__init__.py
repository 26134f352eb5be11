"""Database services."""

from .db_manage import DbManageService
from .db_session import DbSessionService
from .instrumented import InstrumentedRepository

__all__ = ["DbManageService", "DbSessionService", "InstrumentedRepository"]
