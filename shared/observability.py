"""
Observability module for the Foundation Support platform.
Integrates logging, metrics, and tracing.
"""

from typing import Optional

from .logging import configure_logging, get_logger, set_request_id, set_user_context
from .metrics import MetricsCollector, get_metrics_collector
from .tracing import configure_tracing, trace_function, add_span_attributes, add_span_event


class ObservabilityManager:
    """Centralized observability manager for services."""

    def __init__(self, service_name: str, log_level: str = "info",
                 otel_exporter: Optional[str] = None, enable_console: bool = False,
                 metrics: Optional[MetricsCollector] = None, app=None):
        self.service_name = service_name
        self.log_level = log_level
        self.otel_exporter = otel_exporter
        self.enable_console = enable_console

        configure_logging(self.service_name, self.log_level)
        if self.otel_exporter or self.enable_console:
            configure_tracing(self.service_name, self.otel_exporter, self.enable_console, app=app)
        self.metrics = metrics or get_metrics_collector(self.service_name)

        self.logger = get_logger(f"{service_name}.observability")
        self.logger.info("Observability initialized",
                         service=service_name,
                         log_level=log_level,
                         tracing_enabled=bool(otel_exporter or enable_console))

    def trace_request(self, request_id: Optional[str] = None,
                      user_id: Optional[str] = None,
                      tenant_id: Optional[str] = None):
        """Set up request context for logs and the current span."""
        if request_id:
            set_request_id(request_id)
        if user_id or tenant_id:
            set_user_context(user_id, tenant_id)

        add_span_attributes(
            request_id=request_id,
            user_id=user_id,
            tenant_id=tenant_id
        )

    def log_business_event(self, event_type: str, **kwargs):
        """Log business event with full context."""
        self.logger.info(
            "Business event",
            event_type=event_type,
            **kwargs
        )
        self.metrics.record_business_event(event_type)
        add_span_event("business_event", event_type=event_type, **kwargs)


def get_observability_manager(service_name: str, **kwargs) -> ObservabilityManager:
    """Get an observability manager for a service."""
    return ObservabilityManager(service_name, **kwargs)


def observe_function(operation_name: Optional[str] = None, **attributes):
    """Decorator to observe a handler with a tracing span."""
    return trace_function(operation_name, **attributes)
