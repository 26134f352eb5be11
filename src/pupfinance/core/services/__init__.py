"""Core services exports."""

from .audit import AuditEvent, AuditRecorder, DatabaseAuditSink
from .auth import ClaimsExtractor, ServiceSecretGate, require_any_role, require_permissions
from .database import DbManageService, DbSessionService, InstrumentedRepository
from .jwt import JWKSCache, JWKSCacheInMemory, JwksService, JwtVerificationService
from .user import ProfileService, UserSyncEngine

__all__ = [
    # Audit
    "AuditEvent",
    "AuditRecorder",
    "DatabaseAuditSink",
    # Auth
    "ClaimsExtractor",
    "ServiceSecretGate",
    "require_any_role",
    "require_permissions",
    # Database
    "DbManageService",
    "DbSessionService",
    "InstrumentedRepository",
    # JWT
    "JWKSCache",
    "JWKSCacheInMemory",
    "JwksService",
    "JwtVerificationService",
    # User
    "ProfileService",
    "UserSyncEngine",
]
