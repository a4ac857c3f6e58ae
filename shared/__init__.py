"""
Shared utilities for the Foundation Support platform.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace and tenant correlation
- metrics: Prometheus metrics helpers
- tracing: OpenTelemetry tracing config
- errors: Canonical error types and responses
- observability: Logging, metrics and tracing under one manager
- base_service: FastAPI service shell (middleware, health, error handlers)

Cross-service logic should live here to avoid import cycles across service
packages. Do not import from service_* packages into shared/.
"""
