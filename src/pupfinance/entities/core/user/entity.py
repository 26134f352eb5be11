"""User domain entity and the payloads that create or change it."""

from datetime import datetime
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    field_validator,
)
from pydantic.alias_generators import to_camel

from src.pupfinance.entities.core._base import Entity


class User(Entity):
    """Canonical local record of a person known to the identity provider.

    ``external_id`` is issued by the provider and never changes; ``username``
    is generated once on first sync.
    """

    external_id: str = Field(description="Identity provider user id, e.g. 'auth0|abc'")
    email: str = Field(description="User's email address")
    username: str = Field(description="Unique handle, generated on first sync")
    given_name: str | None = Field(default=None, description="User's given name")
    family_name: str | None = Field(default=None, description="User's family name")
    profile_picture_url: str | None = Field(default=None, description="Avatar URL")
    phone_number: str | None = Field(default=None, description="User's phone number")
    email_verified: bool = Field(default=False)
    last_login: datetime | None = Field(default=None)

    def __eq__(self, other: Any) -> bool:
        """Compare users by business attributes, ignoring timestamps."""
        if not isinstance(other, User):
            return False

        return (
            self.id == other.id
            and self.external_id == other.external_id
            and self.email == other.email
            and self.username == other.username
            and self.given_name == other.given_name
            and self.family_name == other.family_name
            and self.profile_picture_url == other.profile_picture_url
            and self.phone_number == other.phone_number
        )

    def __hash__(self) -> int:
        """Hash based on business attributes, ignoring timestamps."""
        return hash((self.id, self.external_id, self.username))


class UserSyncProfile(BaseModel):
    """Profile pushed by the identity provider after a login."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    external_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("auth0Id", "externalId", "external_id"),
    )
    email: EmailStr
    given_name: str | None = None
    family_name: str | None = None
    profile_picture_url: HttpUrl | None = None

    @field_validator("external_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("externalId must not be blank")
        return value


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own record. Anything else is rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    username: str | None = Field(
        default=None, min_length=3, max_length=128, pattern=r"^[A-Za-z0-9_.]+$"
    )
    given_name: str | None = None
    family_name: str | None = None
    phone_number: str | None = Field(default=None, pattern=r"^\+?[1-9]\d{1,14}$")
    profile_picture_url: HttpUrl | None = None

    @field_validator("username")
    @classmethod
    def _username_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("username cannot be cleared")
        return value


class SyncResult(BaseModel):
    user_id: str
    created: bool


class UserProfileResponse(BaseModel):
    """Public view of a user record."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    external_id: str
    email: str
    username: str
    given_name: str | None = None
    family_name: str | None = None
    profile_picture_url: str | None = None
    phone_number: str | None = None
    email_verified: bool
    last_login: datetime | None = None
    created_at: datetime
