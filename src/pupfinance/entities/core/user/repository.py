"""Data-access layer for users."""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, func, select

from src.pupfinance.core.errors import UpstreamUnavailable, UsernameConflictError
from src.pupfinance.entities.core._base import new_id, utc_now
from src.pupfinance.entities.core.user.entity import User
from src.pupfinance.entities.core.user.table import UserTable

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Columns an existing row may have refreshed by a sync.
SYNC_UPDATABLE_FIELDS = frozenset(
    {"given_name", "family_name", "profile_picture_url", "last_login"}
)


class UserRepository:
    """Data-access layer for users.

    Every mutating call runs in its own transaction and commits before
    returning. Unique-constraint violations on ``username`` surface as
    :class:`UsernameConflictError`; any other storage failure surfaces as
    :class:`UpstreamUnavailable`.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> User | None:
        row = self._session.get(UserTable, user_id, populate_existing=True)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_by_external_id(self, external_id: str) -> User | None:
        statement = (
            select(UserTable)
            .where(UserTable.external_id == external_id)
            .execution_options(populate_existing=True)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def count(self) -> int:
        return self._session.exec(select(func.count()).select_from(UserTable)).one()

    def upsert_by_external_id(
        self,
        external_id: str,
        create: Mapping[str, Any],
        update: Mapping[str, Any],
        now: datetime | None = None,
    ) -> User:
        """Insert a user or refresh the existing one in a single statement.

        ``create`` supplies the columns of a brand new row (including the
        generated username). ``update`` lists what an existing row gets
        overwritten with; the username is never part of it.
        """
        unknown = set(update) - SYNC_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable on sync: {sorted(unknown)}")

        now = now or utc_now()
        values = {
            "id": new_id(),
            "created_at": now,
            "updated_at": now,
            "email_verified": False,
            **create,
            "external_id": external_id,
        }
        insert = self._insert_for_dialect()
        statement = (
            insert(UserTable)
            .values(**values)
            .on_conflict_do_update(
                index_elements=["external_id"],
                set_={**update, "updated_at": now},
            )
            .returning(*UserTable.__table__.columns)
        )

        with self._write():
            row = self._session.connection().execute(statement).mappings().one()
            user = User.model_validate(dict(row))
        return user

    def update(self, user_id: str, changes: Mapping[str, Any]) -> User | None:
        row = self._session.get(UserTable, user_id, populate_existing=True)
        if row is None:
            return None

        with self._write():
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = utc_now()
            self._session.add(row)
            self._session.flush()
            self._session.refresh(row)
        return User.model_validate(row, from_attributes=True)

    def delete(self, user_id: str) -> bool:
        row = self._session.get(UserTable, user_id, populate_existing=True)
        if row is None:
            return False

        with self._write():
            self._session.delete(row)
        return True

    def _insert_for_dialect(self):
        dialect = self._session.get_bind().dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise NotImplementedError(
                f"Atomic upsert is not supported on {dialect!r}"
            ) from None

    @contextmanager
    def _write(self) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            if "username" in str(exc.orig):
                logger.info("Username collision rejected by the database")
                raise UsernameConflictError() from exc
            raise UpstreamUnavailable("User store rejected the write") from exc
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("User store write failed: {}", exc)
            raise UpstreamUnavailable("User store unavailable") from exc
