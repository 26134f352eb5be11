"""Per-request identity and access decision models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Claims(BaseModel):
    """Trusted attributes of a verified token, valid for one request."""

    model_config = ConfigDict(frozen=True)

    subject_id: str = Field(description="Token subject; maps to User.external_id")
    permissions: frozenset[str] = Field(default_factory=frozenset)
    roles: frozenset[str] = Field(default_factory=frozenset)
    extra: dict[str, Any] = Field(
        default_factory=dict, description="All claims not mapped to a field above"
    )


class AccessDecision(BaseModel):
    """Outcome of a gate check. Callers map a denial to their own transport error."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)

    def __bool__(self) -> bool:
        return self.allowed
