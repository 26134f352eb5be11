"""Database initialization script."""

from src.pupfinance.core.services.database import DbManageService, DbSessionService
from src.pupfinance.runtime.context import get_config


def init_db() -> None:
    """Create all database tables."""
    database_service = DbSessionService(get_config())
    try:
        DbManageService(database_service.engine).create_all()
    finally:
        database_service.dispose()


if __name__ == "__main__":
    init_db()
