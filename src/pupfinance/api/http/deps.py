"""FastAPI dependency implementations."""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, Request
from sqlmodel import Session

from src.pupfinance.api.http.app_data import ApplicationDependencies
from src.pupfinance.core.errors import Forbidden, Unauthenticated
from src.pupfinance.core.models import Claims
from src.pupfinance.core.services import (
    AuditEvent,
    AuditRecorder,
    ClaimsExtractor,
    InstrumentedRepository,
    JwksService,
    JwtVerificationService,
    ProfileService,
    ServiceSecretGate,
    UserSyncEngine,
)
from src.pupfinance.core.services.audit.audit_recorder import BODYLESS_METHODS
from src.pupfinance.core.services.auth import authorization_gate
from src.pupfinance.core.services.jwt import parse_bearer
from src.pupfinance.entities.core.audit_entry import AuditEntryRepository
from src.pupfinance.entities.core.user import UserRepository


def _app_deps(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_db_session(request: Request) -> Iterator[Session]:
    """Yield a database session that is closed once the response is sent."""
    session = _app_deps(request).database_service.get_session()
    try:
        yield session
    finally:
        session.close()


def get_jwks_service(request: Request) -> JwksService:
    """Get the JWKS service instance."""
    return _app_deps(request).jwks_service


def get_jwt_verify_service(request: Request) -> JwtVerificationService:
    """Get the JWT verification service instance."""
    return _app_deps(request).jwt_verify_service


def get_claims_extractor(request: Request) -> ClaimsExtractor:
    return _app_deps(request).claims_extractor


def get_service_secret_gate(request: Request) -> ServiceSecretGate:
    return _app_deps(request).service_secret_gate


def get_audit_recorder(request: Request) -> AuditRecorder:
    return _app_deps(request).audit_recorder


def get_user_repository(db: Session = Depends(get_db_session)) -> UserRepository:
    return InstrumentedRepository(UserRepository(db))  # type: ignore[return-value]


def get_audit_entry_repository(
    db: Session = Depends(get_db_session),
) -> AuditEntryRepository:
    return InstrumentedRepository(AuditEntryRepository(db))  # type: ignore[return-value]


def get_profile_service(
    repository: UserRepository = Depends(get_user_repository),
) -> ProfileService:
    return ProfileService(repository)


def get_user_sync_engine(
    repository: UserRepository = Depends(get_user_repository),
) -> UserSyncEngine:
    return UserSyncEngine(repository)


def client_ip(request: Request) -> str | None:
    """Caller address, preferring the first hop of ``X-Forwarded-For``."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_current_claims(
    request: Request,
    jwt_verify: JwtVerificationService = Depends(get_jwt_verify_service),
    extractor: ClaimsExtractor = Depends(get_claims_extractor),
) -> Claims:
    """Authenticate the request using a Bearer token."""
    token = parse_bearer(request.headers.get("Authorization"))
    if token is None:
        raise Unauthenticated("Missing Bearer token")

    payload = await jwt_verify.verify_jwt(token)
    claims = extractor.extract(payload)
    request.state.claims = claims
    return claims


def require_permissions(*permissions: str):
    """Create a dependency that requires every listed permission."""

    async def dep(claims: Claims = Depends(get_current_claims)) -> Claims:
        decision = authorization_gate.require_permissions(claims, permissions)
        if not decision:
            raise Forbidden(decision.reason)
        return claims

    return dep


def require_any_role(*roles: str):
    """Create a dependency that requires at least one of the listed roles."""

    async def dep(claims: Claims = Depends(get_current_claims)) -> Claims:
        decision = authorization_gate.require_any_role(claims, roles)
        if not decision:
            raise Forbidden(decision.reason)
        return claims

    return dep


async def require_service_secret(
    request: Request,
    gate: ServiceSecretGate = Depends(get_service_secret_gate),
) -> None:
    """Admit backend callers presenting the shared secret as a Bearer credential."""
    decision = gate.verify(parse_bearer(request.headers.get("Authorization")))
    if not decision:
        raise Unauthenticated(decision.reason)


async def audit_request(
    request: Request,
    claims: Claims = Depends(get_current_claims),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> None:
    """Record the authenticated request. Never fails the request."""
    body = None
    if request.method.upper() not in BODYLESS_METHODS:
        try:
            body = await request.json()
        except ValueError:
            body = None

    recorder.record(
        AuditEvent(
            subject_id=claims.subject_id,
            method=request.method,
            path=request.url.path,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            body=body,
        )
    )
