"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class AuthConfig(BaseModel):
    """Identity provider and token claim configuration."""

    domain: str | None = Field(
        default=None, description="Identity provider domain, e.g. tenant.auth0.com"
    )
    audience: str | None = Field(
        default=None, description="API audience identifier tokens must be issued for"
    )
    permissions_claim: str | None = Field(
        default=None,
        description="Claim holding permissions; defaults to '<audience>/permissions'",
    )
    roles_claim: str = Field(
        default="https://pupfinance.com/roles",
        description="Namespaced claim holding roles",
    )
    allowed_algorithms: list[str] = Field(
        default_factory=lambda: ["RS256"],
        description="JWT algorithms allowed for token validation",
    )
    clock_skew: int = Field(default=60, description="Clock skew tolerance in seconds")
    jwks_cache_ttl: int = Field(default=3600, description="JWKS cache TTL in seconds")

    @computed_field
    @property
    def issuer(self) -> str | None:
        """Issuer URL derived from the provider domain."""
        if not self.domain:
            return None
        domain = self.domain.rstrip("/")
        if not domain.startswith(("http://", "https://")):
            domain = f"https://{domain}"
        return f"{domain}/"

    @computed_field
    @property
    def jwks_uri(self) -> str | None:
        """JWKS endpoint published by the provider."""
        if not self.issuer:
            return None
        return f"{self.issuer}.well-known/jwks.json"

    @computed_field
    @property
    def resolved_permissions_claim(self) -> str:
        """Claim key used for permissions after applying the audience default."""
        if self.permissions_claim:
            return self.permissions_claim
        if self.audience:
            return f"{self.audience}/permissions"
        return "permissions"


class ServiceConfig(BaseModel):
    """Service-to-service trust configuration."""

    sync_secret: str | None = Field(
        default=None,
        description="Shared secret presented by the identity provider sync callback",
    )


class AuditConfig(BaseModel):
    """Audit trail configuration."""

    persist: bool | None = Field(
        default=None,
        description="Persist audit entries to the database; unset means production only",
    )
    queue_size: int = Field(
        default=1000, gt=0, description="Maximum pending audit entries"
    )
    drop_policy: Literal["drop_oldest", "drop_newest"] = Field(
        default="drop_oldest", description="What to discard when the queue is full"
    )


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./database.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    create_tables: bool = Field(
        default=True, description="Create missing tables on startup"
    )
    password_env_var: str | None = Field(
        default=None,
        description="Environment variable name containing database password",
    )
    password_file: str | None = Field(
        default=None,
        description="Path to file containing database password",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the database connection string with password if provided."""
        if self.is_sqlite:
            return self.url

        from sqlalchemy.engine import make_url

        base_url = make_url(self.url)
        password = self._external_password()
        if password is None:
            return self.url

        if base_url.password and base_url.password != password:
            logger.warning(
                "Database URL password does not match the configured secret. Using the secret."
            )
        return base_url.set(password=password).render_as_string(hide_password=False)

    def _external_password(self) -> str | None:
        if self.password_file:
            try:
                with open(self.password_file) as f:
                    return f.read().strip()
            except OSError as e:
                raise ValueError("Failed to read database password from file.") from e
        if self.password_env_var:
            import os

            password = os.getenv(self.password_env_var)
            if not password:
                raise ValueError(
                    f"Environment variable {self.password_env_var} not set"
                )
            return password
        return None


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    auth: AuthConfig = Field(
        default_factory=AuthConfig, description="Identity provider configuration"
    )
    service: ServiceConfig = Field(
        default_factory=ServiceConfig, description="Service trust configuration"
    )
    audit: AuditConfig = Field(
        default_factory=AuditConfig, description="Audit trail configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )

    @property
    def audit_persistence_enabled(self) -> bool:
        if self.audit.persist is not None:
            return self.audit.persist
        return self.app.environment == "production"

    def missing_required_settings(self) -> list[str]:
        """Names of settings the service refuses to start without."""
        missing = []
        if not self.auth.domain:
            missing.append("auth.domain")
        if not self.auth.audience:
            missing.append("auth.audience")
        if not self.service.sync_secret:
            missing.append("service.sync_secret")
        return missing
