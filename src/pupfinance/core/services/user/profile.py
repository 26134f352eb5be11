"""Self-service access to the caller's own user record."""

from collections.abc import Mapping
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from src.pupfinance.core.errors import (
    NotFound,
    Unauthenticated,
    ValidationError,
    pydantic_errors,
)
from src.pupfinance.entities.core.user import ProfileUpdate, User, UserRepository


class ProfileService:
    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    def get_self(self, subject_id: str | None) -> User:
        user = self._repository.get_by_external_id(self._require_subject(subject_id))
        if user is None:
            raise NotFound("User not found")
        return user

    def update_self(
        self, subject_id: str | None, patch: ProfileUpdate | Mapping[str, Any]
    ) -> User:
        """Apply an allow-listed partial update; unknown keys fail the whole patch."""
        subject_id = self._require_subject(subject_id)
        update = self._parse_patch(patch)

        user = self.get_self(subject_id)
        changes = {
            key: str(value) if key == "profile_picture_url" and value is not None else value
            for key, value in update.model_dump(exclude_unset=True).items()
        }
        if not changes:
            return user

        updated = self._repository.update(user.id, changes)
        if updated is None:
            raise NotFound("User not found")
        logger.info("User {} updated fields {}", user.id, sorted(changes))
        return updated

    def delete_self(self, subject_id: str | None) -> None:
        user = self.get_self(subject_id)
        if not self._repository.delete(user.id):
            raise NotFound("User not found")
        logger.info("User {} deleted", user.id)

    @staticmethod
    def _require_subject(subject_id: str | None) -> str:
        if not subject_id:
            raise Unauthenticated()
        return subject_id

    @staticmethod
    def _parse_patch(patch: ProfileUpdate | Mapping[str, Any]) -> ProfileUpdate:
        if isinstance(patch, ProfileUpdate):
            return patch
        if not isinstance(patch, Mapping):
            raise ValidationError("Request body must be a JSON object")
        try:
            return ProfileUpdate.model_validate(patch)
        except PydanticValidationError as exc:
            raise ValidationError(
                "Invalid profile update", errors=pydantic_errors(exc)
            ) from exc
