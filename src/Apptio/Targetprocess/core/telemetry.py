# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Telemetry infrastructure for the Targetprocess client.

Provides OpenTelemetry-based tracing, metrics, and logging around each logical
API call (including all of its retry attempts), with an extensible hook system
for custom telemetry providers.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Generator,
    List,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from opentelemetry import metrics, trace
from opentelemetry.trace import Status, StatusCode

from ..common.constants import (
    OTEL_ATTR_DB_SYSTEM,
    OTEL_ATTR_DB_OPERATION,
    OTEL_ATTR_HTTP_METHOD,
    OTEL_ATTR_HTTP_URL,
    OTEL_ATTR_HTTP_STATUS_CODE,
    OTEL_ATTR_TARGETPROCESS_ENTITY_TYPE,
    OTEL_ATTR_TARGETPROCESS_REQUEST_ID,
    OTEL_ATTR_TARGETPROCESS_RETRY_COUNT,
)

_INSTRUMENTATION_NAME = "Apptio.Targetprocess"

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True)
class TelemetryConfig:
    """Configuration for client telemetry and observability.

    Telemetry is opt-in. When enabled, the client produces OpenTelemetry-compatible
    traces and metrics, and request summaries on a standard library logger.

    Example:
        Tracing plus request logging::

            config = TargetprocessConfig(
                telemetry=TelemetryConfig(enable_tracing=True, enable_logging=True)
            )

        Custom hook::

            config = TargetprocessConfig(
                telemetry=TelemetryConfig(hooks=[MyCustomTelemetryHook()])
            )
    """

    # Signal toggles
    enable_tracing: bool = False
    enable_metrics: bool = False
    enable_logging: bool = False

    # Logging configuration
    log_level: str = "WARNING"
    logger_name: str = "Apptio.Targetprocess.requests"

    # Custom hooks
    hooks: List["TelemetryHook"] = field(default_factory=list)


# ============================================================================
# Context Objects
# ============================================================================


@dataclass
class RequestContext:
    """Context passed to telemetry hooks for each logical request."""

    client_request_id: str

    # Request details
    method: str
    url: str
    operation: str  # e.g., "query.search", "entity_types.fetch"
    entity_type: Optional[str] = None

    # Timing
    start_time: float = field(default_factory=time.perf_counter)

    # Custom data bag for hooks to share state
    custom_data: Dict[str, Any] = field(default_factory=dict)

    # Internal: span reference for adding response attributes
    _span: Any = field(default=None, repr=False)


@dataclass
class ResponseContext:
    """Response information passed to telemetry hooks."""

    status_code: int
    duration_ms: float
    error: Optional[Exception] = None
    retry_count: int = 0


# ============================================================================
# Hook Protocol
# ============================================================================


@runtime_checkable
class TelemetryHook(Protocol):
    """Protocol for custom telemetry hooks.

    All methods are optional - implement only what you need.

    Example:
        class StatsdHook:
            def __init__(self, statsd):
                self.statsd = statsd

            def on_request_end(self, request: RequestContext, response: ResponseContext):
                self.statsd.timing(
                    f"targetprocess.{request.operation}.duration",
                    response.duration_ms
                )
    """

    def on_request_start(self, context: RequestContext) -> None:
        """Called before the first attempt of a request is sent."""
        ...

    def on_request_end(self, request: RequestContext, response: ResponseContext) -> None:
        """Called after a request completes, successfully or not."""
        ...

    def on_request_error(self, request: RequestContext, error: Exception) -> None:
        """Called when the request raises."""
        ...


# ============================================================================
# Telemetry Manager
# ============================================================================


class TelemetryManager:
    """Manages telemetry instrumentation for the Targetprocess client.

    This class is internal and not part of the public API.
    """

    def __init__(self, config: Optional[TelemetryConfig] = None) -> None:
        self._config = config or TelemetryConfig()
        self._tracer: Optional[Any] = None
        self._meter: Optional[Any] = None
        self._logger: Optional[logging.Logger] = None
        self._hooks = list(self._config.hooks)

        # Metric instruments
        self._request_duration: Optional[Any] = None
        self._request_count: Optional[Any] = None
        self._error_count: Optional[Any] = None
        self._retry_count: Optional[Any] = None

        self._initialize()

    @property
    def is_tracing_enabled(self) -> bool:
        return self._config.enable_tracing

    @property
    def is_metrics_enabled(self) -> bool:
        return self._config.enable_metrics

    def _initialize(self) -> None:
        if self._config.enable_tracing:
            self._tracer = trace.get_tracer(_INSTRUMENTATION_NAME)

        if self._config.enable_metrics:
            self._meter = metrics.get_meter(_INSTRUMENTATION_NAME)
            self._setup_metrics()

        if self._config.enable_logging:
            self._logger = logging.getLogger(self._config.logger_name)
            self._logger.setLevel(getattr(logging, self._config.log_level.upper()))

    def _setup_metrics(self) -> None:
        """Create metric instruments."""
        if not self._meter:
            return

        self._request_duration = self._meter.create_histogram(
            name="targetprocess.client.request.duration",
            description="Duration of Targetprocess API requests, including retries",
            unit="ms",
        )
        self._request_count = self._meter.create_counter(
            name="targetprocess.client.request.count",
            description="Number of Targetprocess API requests",
            unit="1",
        )
        self._error_count = self._meter.create_counter(
            name="targetprocess.client.error.count",
            description="Number of failed Targetprocess API requests",
            unit="1",
        )
        self._retry_count = self._meter.create_counter(
            name="targetprocess.client.retry.count",
            description="Number of request retries",
            unit="1",
        )

    @contextmanager
    def trace_request(
        self,
        operation: str,
        method: str,
        url: str,
        client_request_id: str,
        entity_type: Optional[str] = None,
    ) -> Generator[RequestContext, None, None]:
        """Create a traced request context.

        Usage:
            with telemetry.trace_request("query.search", "GET", url, req_id) as ctx:
                data = self._http._execute_with_retry(...)
                telemetry.record_response(ctx, 200)
        """
        ctx = RequestContext(
            client_request_id=client_request_id,
            method=method,
            url=url,
            operation=operation,
            entity_type=entity_type,
        )

        self._dispatch_request_start(ctx)

        span = None
        if self._tracer:
            span_name = f"Targetprocess {operation}"
            if entity_type:
                span_name = f"{span_name} {entity_type}"

            attributes: Dict[str, Any] = {
                OTEL_ATTR_DB_SYSTEM: "targetprocess",
                OTEL_ATTR_DB_OPERATION: operation,
                OTEL_ATTR_HTTP_METHOD: method,
                OTEL_ATTR_HTTP_URL: url,
                OTEL_ATTR_TARGETPROCESS_REQUEST_ID: client_request_id,
            }
            if entity_type:
                attributes[OTEL_ATTR_TARGETPROCESS_ENTITY_TYPE] = entity_type
            span = self._tracer.start_span(span_name, kind=trace.SpanKind.CLIENT, attributes=attributes)
            ctx._span = span

        try:
            yield ctx
        except Exception as e:
            if span:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
            self._dispatch_request_error(ctx, e)
            raise
        finally:
            if span:
                span.end()

    def record_response(
        self,
        ctx: RequestContext,
        status_code: int,
        error: Optional[Exception] = None,
        retry_count: int = 0,
    ) -> None:
        """Record response metrics and dispatch to hooks."""
        duration_ms = (time.perf_counter() - ctx.start_time) * 1000

        response = ResponseContext(
            status_code=status_code,
            duration_ms=duration_ms,
            error=error,
            retry_count=retry_count,
        )

        if ctx._span:
            ctx._span.set_attribute(OTEL_ATTR_HTTP_STATUS_CODE, status_code)
            ctx._span.set_attribute(OTEL_ATTR_TARGETPROCESS_RETRY_COUNT, retry_count)

        if self._request_duration:
            attributes: Dict[str, Any] = {
                "operation": ctx.operation,
                "method": ctx.method,
                "status_code": status_code,
            }
            if ctx.entity_type:
                attributes["entity_type"] = ctx.entity_type

            self._request_duration.record(duration_ms, attributes)
            self._request_count.add(1, attributes)

            if error is not None or status_code >= 400:
                self._error_count.add(1, attributes)

            if retry_count > 0:
                self._retry_count.add(retry_count, attributes)

        if self._logger:
            level = logging.WARNING if (error is not None or status_code >= 400) else logging.DEBUG
            self._logger.log(
                level,
                "%s %s %s %.1fms retries=%d",
                ctx.operation,
                ctx.method,
                status_code,
                duration_ms,
                retry_count,
                extra={"client_request_id": ctx.client_request_id},
            )

        self._dispatch_request_end(ctx, response)

    def _dispatch_request_start(self, ctx: RequestContext) -> None:
        for hook in self._hooks:
            if hasattr(hook, "on_request_start"):
                try:
                    hook.on_request_start(ctx)
                except Exception:
                    logger.debug("Telemetry hook on_request_start failed", exc_info=True)

    def _dispatch_request_end(self, request: RequestContext, response: ResponseContext) -> None:
        for hook in self._hooks:
            if hasattr(hook, "on_request_end"):
                try:
                    hook.on_request_end(request, response)
                except Exception:
                    logger.debug("Telemetry hook on_request_end failed", exc_info=True)

    def _dispatch_request_error(self, request: RequestContext, error: Exception) -> None:
        for hook in self._hooks:
            if hasattr(hook, "on_request_error"):
                try:
                    hook.on_request_error(request, error)
                except Exception:
                    logger.debug("Telemetry hook on_request_error failed", exc_info=True)


# ============================================================================
# No-op Manager for when telemetry is disabled
# ============================================================================


class NoOpTelemetryManager:
    """No-op telemetry manager when telemetry is disabled."""

    @contextmanager
    def trace_request(
        self,
        operation: str,
        method: str,
        url: str,
        client_request_id: str,
        entity_type: Optional[str] = None,
    ) -> Generator[RequestContext, None, None]:
        yield RequestContext(
            client_request_id=client_request_id,
            method=method,
            url=url,
            operation=operation,
            entity_type=entity_type,
        )

    def record_response(self, *args: Any, **kwargs: Any) -> None:
        pass


def create_telemetry_manager(
    config: Optional[TelemetryConfig],
) -> Union[TelemetryManager, NoOpTelemetryManager]:
    """Factory to create appropriate telemetry manager."""
    if config is None:
        return NoOpTelemetryManager()

    has_any_enabled = config.enable_tracing or config.enable_metrics or config.enable_logging or config.hooks

    if not has_any_enabled:
        return NoOpTelemetryManager()

    return TelemetryManager(config)


__all__ = [
    "TelemetryConfig",
    "TelemetryHook",
    "TelemetryManager",
    "NoOpTelemetryManager",
    "RequestContext",
    "ResponseContext",
    "create_telemetry_manager",
]
