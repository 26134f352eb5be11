"""Authentication and authorization services."""

from .authorization_gate import require_any_role, require_permissions
from .claims_extractor import ClaimsExtractor
from .service_secret_gate import ServiceSecretGate

__all__ = [
    "ClaimsExtractor",
    "ServiceSecretGate",
    "require_any_role",
    "require_permissions",
]
