from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from reqlog.api.v1.router import api_router
from reqlog.core.config import LoggerConfig, Settings, get_settings
from reqlog.core.logging import configure_logging
from reqlog.middleware.request_logger import RequestLoggerMiddleware

logger = structlog.get_logger(__name__)

API_PREFIX = "/api/v1"


def create_application(
    settings: Optional[Settings] = None,
    config: Optional[LoggerConfig] = None,
) -> FastAPI:
    settings = settings or get_settings()
    config = config or settings.logger_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        configure_logging(settings)
        logger.info(
            "Starting service",
            version=settings.APP_VERSION,
            environment=settings.APP_ENV,
            auto_logging=config.auto_logging.value,
        )
        yield
        logger.info("Shutdown complete")

    application = FastAPI(
        title=settings.APP_NAME,
        description="Example service emitting request-scoped NDJSON logs.",
        version=settings.APP_VERSION,
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )
    application.state.settings = settings

    application.add_middleware(RequestLoggerMiddleware, config=config)

    application.include_router(api_router, prefix=API_PREFIX)

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_logger = getattr(request.state, "logger", None)
        trace_id = request_logger.trace_id if request_logger is not None else None
        return JSONResponse(
            status_code=500,
            content={
                "detail": "An internal server error occurred.",
                "trace_id": trace_id or "unknown",
            },
        )

    return application


app = create_application()
