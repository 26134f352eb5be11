"""Permission and role decisions over extracted claims.

Permissions compose: a route listing several needs all of them. Roles gate
broadly: holding any one of the listed roles is enough. A bare string counts
as a single requirement.
"""

from collections.abc import Iterable

from src.pupfinance.core.models.claims import AccessDecision, Claims


def _as_set(required: str | Iterable[str]) -> frozenset[str]:
    if isinstance(required, str):
        return frozenset({required})
    return frozenset(required)


def require_permissions(
    claims: Claims | None, required: str | Iterable[str]
) -> AccessDecision:
    """Allow iff every required permission is present."""
    if claims is None:
        return AccessDecision.deny("No verified identity")
    missing = _as_set(required) - claims.permissions
    if missing:
        return AccessDecision.deny(
            f"Insufficient permissions: missing {', '.join(sorted(missing))}"
        )
    return AccessDecision.allow()


def require_any_role(
    claims: Claims | None, required: str | Iterable[str]
) -> AccessDecision:
    """Allow iff at least one required role is held."""
    if claims is None:
        return AccessDecision.deny("No verified identity")
    if claims.roles.isdisjoint(_as_set(required)):
        return AccessDecision.deny("Insufficient role")
    return AccessDecision.allow()
