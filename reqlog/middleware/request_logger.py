"""
Request logger middleware.
Builds a per-request Logger, publishes it on request.state and auto-logs the outcome.
"""

import time
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import structlog
from fastapi import Request, Response, status
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from reqlog.core.config import FALLBACK_TRACE_HEADER, HeaderPolicy, LoggerConfig
from reqlog.schemas.schemas import (
    AutoLoggingMode,
    DataPlacement,
    LifecycleState,
    RequestMetadata,
)
from reqlog.services.logger import Logger
from reqlog.services.sink import Sink

PlatformPropertiesGetter = Callable[[Request], Optional[Mapping[str, Any]]]

# ASGI scope key under which edge runtimes expose request properties
PLATFORM_SCOPE_KEY = "cf"


def default_platform_properties(request: Request) -> Optional[Mapping[str, Any]]:
    return request.scope.get(PLATFORM_SCOPE_KEY)


def pick_platform_properties(
    raw: Any, include_keys: Sequence[str]
) -> Optional[Dict[str, Any]]:
    """Select the configured keys that are present; None when nothing is."""
    if not include_keys or not isinstance(raw, Mapping):
        return None
    selected = {key: raw[key] for key in include_keys if key in raw}
    return selected or None


def pick_request_headers(
    headers: Headers, policy: HeaderPolicy
) -> Optional[Dict[str, str]]:
    """Copy request headers per policy; None when the result would be empty."""
    if policy == "omit":
        return None

    picked: Dict[str, str] = {}
    if policy == "all":
        for key, value in headers.items():
            picked[key] = f"{picked[key]}, {value}" if key in picked else value
    else:
        for name in policy:
            values = headers.getlist(name)
            if values:
                picked[name.lower()] = ", ".join(values)

    return picked or None


class RequestLifecycle:
    """
    Tracks one request from arrival to its automatic log record.

    INIT -> IN_FLIGHT on begin(); IN_FLIGHT -> COMPLETED on complete() or
    FAILED on fail(). auto_log() is only valid in a terminal state.
    """

    def __init__(
        self,
        request: Request,
        config: LoggerConfig,
        sink: Optional[Sink] = None,
        platform_properties: PlatformPropertiesGetter = default_platform_properties,
    ) -> None:
        self.request = request
        self.config = config
        self.sink = sink
        self.platform_properties = platform_properties
        self.state = LifecycleState.INIT
        self.logger: Optional[Logger] = None
        self.trace_id: Optional[str] = None
        self.status_code: Optional[int] = None
        self.error: Optional[Exception] = None
        self._started_at = 0.0

    def begin(self) -> Logger:
        self._require(LifecycleState.INIT)
        self._started_at = time.monotonic()
        self.trace_id = self._resolve_trace_id()

        self.logger = Logger(
            level=self.config.level,
            trace_id=self.trace_id,
            req=self._build_request_metadata(),
            redact_keys=self.config.redact_keys,
            sink=self.sink,
        )
        self.request.state.logger = self.logger
        self.state = LifecycleState.IN_FLIGHT
        return self.logger

    def complete(self, status_code: int) -> None:
        self._require(LifecycleState.IN_FLIGHT)
        self.status_code = status_code
        self.state = LifecycleState.COMPLETED

    def fail(self, exc: Exception) -> None:
        self._require(LifecycleState.IN_FLIGHT)
        self.error = exc
        self.state = LifecycleState.FAILED

    @property
    def duration_ms(self) -> float:
        return round((time.monotonic() - self._started_at) * 1000, 2)

    def auto_log(self) -> None:
        """Emit the automatic record selected by the auto-logging mode."""
        if self.state not in (LifecycleState.COMPLETED, LifecycleState.FAILED):
            raise RuntimeError(f"Request is not finished (state={self.state.value})")

        mode = self.config.auto_logging
        if mode is AutoLoggingMode.SILENT:
            return

        duration_ms = self.duration_ms
        if mode is AutoLoggingMode.ACCESS:
            # a failed request is answered by the server error handler
            status_code = (
                self.status_code
                if self.state is LifecycleState.COMPLETED
                else status.HTTP_500_INTERNAL_SERVER_ERROR
            )
            self.logger.info(
                "Request completed",
                {"status": status_code, "duration_ms": duration_ms},
                placement=DataPlacement.FLATTENED,
            )
            return

        if self.error is not None:
            self.logger.error(
                "Unhandled error",
                self.error,
                {"duration_ms": duration_ms},
                placement=DataPlacement.FLATTENED,
            )
        elif self.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            self.logger.error(
                "Request failed",
                None,
                {"status": self.status_code, "duration_ms": duration_ms},
                placement=DataPlacement.FLATTENED,
            )

    def _require(self, expected: LifecycleState) -> None:
        if self.state is not expected:
            raise RuntimeError(
                f"Invalid lifecycle transition from {self.state.value}"
            )

    def _resolve_trace_id(self) -> Optional[str]:
        headers = self.request.headers
        trace_id = headers.get(self.config.trace_header)
        if trace_id is None:
            trace_id = headers.get(FALLBACK_TRACE_HEADER)
        return trace_id or None

    def _build_request_metadata(self) -> RequestMetadata:
        return RequestMetadata(
            method=self.request.method,
            url=self.request.url.path,
            headers=pick_request_headers(self.request.headers, self.config.header),
            cf=pick_platform_properties(
                self.platform_properties(self.request),
                self.config.include_platform_properties,
            ),
        )


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """
    HTTP middleware that gives every request its own structured Logger.

    Handlers reach the logger through request.state.logger (or the
    get_request_logger dependency). Exceptions raised downstream are logged
    according to the auto-logging mode and then re-raised.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: Optional[LoggerConfig] = None,
        *,
        sink: Optional[Sink] = None,
        platform_properties: Optional[PlatformPropertiesGetter] = None,
        **options: Any,
    ) -> None:
        super().__init__(app)
        if config is not None and options:
            raise TypeError("Pass either a LoggerConfig or keyword options, not both")
        self.config = config if config is not None else LoggerConfig(**options)
        self.sink = sink
        self.platform_properties = platform_properties or default_platform_properties

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        lifecycle = RequestLifecycle(
            request,
            self.config,
            sink=self.sink,
            platform_properties=self.platform_properties,
        )
        lifecycle.begin()

        correlation = {"trace_id": lifecycle.trace_id} if lifecycle.trace_id else {}
        with structlog.contextvars.bound_contextvars(**correlation):
            try:
                response = await call_next(request)
            except Exception as exc:
                lifecycle.fail(exc)
                lifecycle.auto_log()
                raise

        lifecycle.complete(response.status_code)
        lifecycle.auto_log()
        return response


def get_request_logger(request: Request) -> Logger:
    """FastAPI dependency returning the logger published by the middleware."""
    request_logger = getattr(request.state, "logger", None)
    if request_logger is None:
        raise RuntimeError("RequestLoggerMiddleware is not installed")
    return request_logger
