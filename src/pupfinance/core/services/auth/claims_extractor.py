"""Turn a verified token payload into a ``Claims`` value."""

from collections.abc import Mapping
from typing import Any

from loguru import logger

from src.pupfinance.core.errors import MalformedClaimsError
from src.pupfinance.core.models.claims import Claims
from src.pupfinance.runtime.config.config_data import AuthConfig


def _string_set(payload: Mapping[str, Any], key: str) -> frozenset[str]:
    """Read a list-of-strings claim; any other shape counts as empty."""
    value = payload.get(key)
    if value is None:
        return frozenset()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        logger.warning(
            "Ignoring claim {} with unexpected shape {}", key, type(value).__name__
        )
        return frozenset()
    return frozenset(value)


class ClaimsExtractor:
    """Extract subject, permissions and roles under configured claim keys.

    Permissions live under an audience-scoped key (``<audience>/permissions``
    unless configured otherwise) and roles under a fixed namespaced key.
    """

    def __init__(self, permissions_claim: str, roles_claim: str) -> None:
        self._permissions_claim = permissions_claim
        self._roles_claim = roles_claim

    @classmethod
    def from_config(cls, auth_config: AuthConfig) -> "ClaimsExtractor":
        return cls(
            permissions_claim=auth_config.resolved_permissions_claim,
            roles_claim=auth_config.roles_claim,
        )

    @property
    def permissions_claim(self) -> str:
        return self._permissions_claim

    @property
    def roles_claim(self) -> str:
        return self._roles_claim

    def extract(self, payload: Mapping[str, Any]) -> Claims:
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise MalformedClaimsError()

        extra = {
            key: value
            for key, value in payload.items()
            if key not in ("sub", self._permissions_claim, self._roles_claim)
        }
        return Claims(
            subject_id=subject,
            permissions=_string_set(payload, self._permissions_claim),
            roles=_string_set(payload, self._roles_claim),
            extra=extra,
        )
