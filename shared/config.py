"""
Shared configuration management for the Foundation Support platform.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FOUNDATION_",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Document store
    store_backend: str = Field(default="memory", description="memory or postgres")
    postgres_dsn: str = Field(default="postgres://localhost:5432/foundation")
    postgres_min_pool: int = Field(default=2)
    postgres_max_pool: int = Field(default=10)

    # Identity provider
    jwks_url: str = Field(default="http://localhost:8080/.well-known/jwks.json")
    jwks_cache_ttl: int = Field(default=3600)
    jwt_issuer: Optional[str] = Field(default=None)

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: str = Field(default="http://localhost:4317")
    enable_console_tracing: bool = Field(default=False)

    # Authorization responses
    mask_authorization_errors: bool = Field(default=False)

    # Tenant defaults
    default_currency: str = Field(default="NGN")
    default_tenant_name: str = Field(default="TheOyinbooke Foundation")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
