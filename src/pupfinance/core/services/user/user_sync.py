"""Reconcile identity-provider users into the local store."""

import re
import secrets
import string
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from src.pupfinance.core.errors import ValidationError, pydantic_errors
from src.pupfinance.entities.core._base import utc_now
from src.pupfinance.entities.core.user import SyncResult, UserRepository, UserSyncProfile

USERNAME_SUFFIX_LENGTH = 8
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_NON_CONFORMING = re.compile(r"[^a-z0-9_]")


def normalize_local_part(email: str) -> str:
    """Lowercased local part of ``email`` with every char outside ``[a-z0-9_]`` as ``_``."""
    local, _, _ = email.rpartition("@")
    normalized = _NON_CONFORMING.sub("_", (local or email).lower())
    return normalized or "user"


def generate_username(email: str, suffix_length: int = USERNAME_SUFFIX_LENGTH) -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(suffix_length))
    return f"{normalize_local_part(email)}_{suffix}"


class UserSyncEngine:
    """Create-or-refresh a user from a provider profile in one atomic upsert.

    The username is generated up front and only lands in the row when the
    upsert inserts; an existing row keeps its username, which is how the
    created/refreshed branch is told apart afterwards.
    """

    def __init__(
        self,
        repository: UserRepository,
        clock: Callable[[], datetime] = utc_now,
        username_factory: Callable[[str], str] = generate_username,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._username_factory = username_factory

    @staticmethod
    def parse_profile(payload: UserSyncProfile | Mapping[str, Any]) -> UserSyncProfile:
        if isinstance(payload, UserSyncProfile):
            return payload
        try:
            return UserSyncProfile.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(
                "Invalid user sync payload", errors=pydantic_errors(exc)
            ) from exc

    def sync(self, payload: UserSyncProfile | Mapping[str, Any]) -> SyncResult:
        profile = self.parse_profile(payload)
        now = self._clock()
        candidate = self._username_factory(profile.email)

        # Optional fields absent from the payload leave stored values alone
        refreshed: dict[str, Any] = {"last_login": now}
        for field in ("given_name", "family_name", "profile_picture_url"):
            if field in profile.model_fields_set:
                value = getattr(profile, field)
                refreshed[field] = str(value) if value is not None else None

        user = self._repository.upsert_by_external_id(
            profile.external_id,
            create={
                "email": profile.email,
                "username": candidate,
                "email_verified": True,
                **refreshed,
            },
            update=refreshed,
            now=now,
        )

        created = user.username == candidate
        if created:
            logger.info("User created from sync: {} ({})", user.id, user.username)
        else:
            logger.info("User refreshed from sync: {}", user.id)
        return SyncResult(user_id=user.id, created=created)
