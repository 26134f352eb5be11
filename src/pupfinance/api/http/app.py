"""FastAPI application and lifecycle."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.responses import JSONResponse

from src.pupfinance.api.http.app_data import ApplicationDependencies
from src.pupfinance.api.http.deps import client_ip
from src.pupfinance.api.http.routers.admin import router as admin_router
from src.pupfinance.api.http.routers.health import router as health_router
from src.pupfinance.api.http.routers.users import router as users_router
from src.pupfinance.api.utils.app_startup import configure_logging
from src.pupfinance.core.errors import PupFinanceError, pydantic_errors
from src.pupfinance.core.services import (
    AuditRecorder,
    ClaimsExtractor,
    DatabaseAuditSink,
    DbManageService,
    DbSessionService,
    JWKSCacheInMemory,
    JwksService,
    JwtVerificationService,
    ServiceSecretGate,
)
from src.pupfinance.runtime.context import get_config

# Load configuration
main_config = get_config()

# Initialize logging
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup()
    try:
        yield
    finally:
        await shutdown()


app = FastAPI(
    title="Pup Finance API",
    lifespan=lifespan,
    docs_url=None if main_config.app.environment == "production" else "/docs",
    redoc_url=None if main_config.app.environment == "production" else "/redoc",
)

# expose startup for tests
__all__ = ["app", "startup", "shutdown"]

# --- CORS configuration ---
if main_config.app.environment == "production" and "*" in main_config.app.cors.origins:
    raise RuntimeError(
        "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=main_config.app.cors.origins,
    allow_credentials=main_config.app.cors.allow_credentials,
    allow_methods=main_config.app.cors.allow_methods,
    allow_headers=main_config.app.cors.allow_headers,
)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


# --- Error mapping ---
@app.exception_handler(PupFinanceError)
async def handle_service_error(request: Request, exc: PupFinanceError) -> JSONResponse:
    content = {"detail": exc.detail, "request_id": _request_id(request)}
    errors = getattr(exc, "errors", None)
    if errors:
        content["errors"] = errors
    if exc.status_code >= 500:
        logger.error("{} on {}: {}", type(exc).__name__, request.url.path, exc.detail)
    else:
        logger.info("{} on {}: {}", type(exc).__name__, request.url.path, exc.detail)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Validation failed",
            "errors": pydantic_errors(exc),
            "request_id": _request_id(request),
        },
    )


# --- Request logging middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip(request) or "unknown",
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    start = time.perf_counter()

    # Everything that logs within this block inherits base_ctx
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")

            response.headers.setdefault("X-Request-ID", request_id)
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )


# --- Router registration ---
app.include_router(health_router)
app.include_router(users_router)
app.include_router(admin_router)


# --- Lifecycle hooks ---
async def startup() -> None:
    config = get_config()
    logger.info("Starting up application in {} environment", config.app.environment)

    # Fail fast on misconfiguration
    missing = config.missing_required_settings()
    if missing:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")

    jwks_cache = JWKSCacheInMemory(ttl=config.auth.jwks_cache_ttl)
    jwks_service = JwksService(jwks_cache)
    jwt_verify_service = JwtVerificationService(jwks_service, config.auth)

    database_service = DbSessionService(config)
    if config.database.create_tables:
        DbManageService(database_service.engine).create_all()

    audit_recorder = AuditRecorder.from_config(
        config, DatabaseAuditSink(database_service.get_session)
    )
    await audit_recorder.start()

    app.state.app_dependencies = ApplicationDependencies(
        jwks_cache=jwks_cache,
        jwks_service=jwks_service,
        jwt_verify_service=jwt_verify_service,
        claims_extractor=ClaimsExtractor.from_config(config.auth),
        service_secret_gate=ServiceSecretGate(config.service.sync_secret),
        database_service=database_service,
        audit_recorder=audit_recorder,
    )
    logger.info(
        "Application ready (audit persistence {})",
        "on" if audit_recorder.persist else "off",
    )


async def shutdown() -> None:
    logger.info("Shutting down application")
    app_dependencies: ApplicationDependencies | None = getattr(
        app.state, "app_dependencies", None
    )
    if app_dependencies is None:
        return
    await app_dependencies.audit_recorder.stop()
    app_dependencies.database_service.dispose()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=main_config.app.host,
        port=main_config.app.port,
        access_log=False,  # We handle access logging in middleware
    )
