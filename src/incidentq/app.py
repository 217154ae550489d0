import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from .api import router as api_router
from .config import Settings
from .metrics import MetricsTracker
from .storage import Storage

logger = logging.getLogger("incidentq")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _route_label(request: Request) -> str:
    # Label by route template so /incidents/{number} is one series.
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record every request, and every 5xx or unhandled error, per route."""

    async def dispatch(self, request: Request, call_next):
        tracker: MetricsTracker = request.app.state.metrics
        route = _route_label(request)
        try:
            response = await call_next(request)
        except Exception as e:
            tracker.record_request(route, 500)
            tracker.record_error(route, type(e).__name__)
            raise
        tracker.record_request(route, response.status_code)
        if response.status_code >= 500:
            tracker.record_error(route, str(response.status_code))
        return response


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Incident store query failed for %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=503, content={"detail": "incident store unavailable"})


def create_app(settings: Settings, storage: Storage, metrics: Optional[MetricsTracker] = None) -> FastAPI:
    """Build the query API around an already-connected ``Storage``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down, closing incident store")
        storage.close()

    app = FastAPI(title="incidentq", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage
    app.state.metrics = metrics or MetricsTracker()

    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_middleware(MetricsMiddleware)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["GET"],
            allow_headers=["Origin", "Content-Type", "Accept"],
        )

    app.include_router(api_router)
    return app


__all__ = ["create_app", "configure_logging", "LOG_FORMAT"]
