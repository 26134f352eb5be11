"""Shared-secret check for the identity provider's sync callback."""

import hmac

from src.pupfinance.core.errors import ConfigurationError
from src.pupfinance.core.models.claims import AccessDecision


class ServiceSecretGate:
    """Validates the secret presented by a trusted backend caller.

    This is not a user authentication mechanism; requests passing it carry no
    ``Claims``.
    """

    def __init__(self, secret: str | None) -> None:
        if not secret:
            raise ConfigurationError("Service sync secret is not configured")
        self._secret = secret.encode("utf-8")

    def verify(self, presented_secret: str | None) -> AccessDecision:
        if not presented_secret:
            return AccessDecision.deny("Missing service credential")
        if not hmac.compare_digest(presented_secret.encode("utf-8"), self._secret):
            return AccessDecision.deny("Invalid service credential")
        return AccessDecision.allow()
