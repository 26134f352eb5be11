"""User database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from src.pupfinance.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    ``external_id`` and ``username`` each carry a unique index; the sync
    upsert relies on the former as its conflict target.
    """

    external_id: str = Field(
        sa_column=sa.Column(sa.String(255), nullable=False, unique=True, index=True)
    )
    email: str = Field(sa_column=sa.Column(sa.String(320), nullable=False))
    username: str = Field(
        sa_column=sa.Column(sa.String(128), nullable=False, unique=True, index=True)
    )
    given_name: str | None = None
    family_name: str | None = None
    profile_picture_url: str | None = None
    phone_number: str | None = None
    email_verified: bool = Field(default=False)
    last_login: datetime | None = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
