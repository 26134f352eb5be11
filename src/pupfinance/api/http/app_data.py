from dataclasses import dataclass

from src.pupfinance.core.services import (
    AuditRecorder,
    ClaimsExtractor,
    DbSessionService,
    JWKSCacheInMemory,
    JwksService,
    JwtVerificationService,
    ServiceSecretGate,
)


@dataclass
class ApplicationDependencies:
    jwks_cache: JWKSCacheInMemory
    jwks_service: JwksService
    jwt_verify_service: JwtVerificationService
    claims_extractor: ClaimsExtractor
    service_secret_gate: ServiceSecretGate
    database_service: DbSessionService
    audit_recorder: AuditRecorder
