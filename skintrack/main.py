import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from skintrack.logging import configure_logging
from skintrack.config import settings
from skintrack.errors import InvalidImagePayload
from skintrack.middleware.request_id import RequestIdMiddleware

from skintrack.api.error_handlers import (
    http_exception_handler,
    invalid_image_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from skintrack.api.health import router as health_router
from skintrack.api.routes_analyze import router as analyze_router
from skintrack.api.routes_timeline import router as timeline_router
from skintrack.observability.metrics_route import router as metrics_router


def create_app() -> FastAPI:
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI(title=settings.app_name)

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(InvalidImagePayload, invalid_image_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(analyze_router)
    app.include_router(timeline_router)
    app.include_router(metrics_router)

    logger.info("App initialized provider=%s timeline=%s", settings.oracle_provider, settings.timeline_path)
    return app


app = create_app()
