from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import anyio
import anyio.to_thread
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError

from quickbite.core.config import Settings
from quickbite.core.errors import ConcurrencyConflict, MenuItemNotFound, MenuValidationError
from quickbite.core.logging import configure_logging, request_id_ctx
from quickbite.core.sentry import init_sentry
from quickbite.db.bootstrap import init_store
from quickbite.menu.router import router as menu_router
from quickbite.menu.schemas import field_errors

logger = structlog.get_logger(__name__)

READY_TIMEOUT_SECONDS = 1.5


def _validation_response(errors) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": [error.as_dict() for error in errors]},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)
    init_sentry(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = init_store(settings)
        logger.info("service_started", environment=settings.environment)
        try:
            yield
        finally:
            app.state.store.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.add_middleware(SlowAPIMiddleware)

    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["x-request-id"] = request_id
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning("request_validation_failed", path=request.url.path, error=str(exc))
        return _validation_response(field_errors(exc.errors()))

    @app.exception_handler(MenuValidationError)
    async def menu_validation_handler(request: Request, exc: MenuValidationError):
        logger.warning("menu_validation_failed", path=request.url.path, error=str(exc))
        return _validation_response(exc.errors)

    @app.exception_handler(MenuItemNotFound)
    async def not_found_handler(request: Request, exc: MenuItemNotFound):
        logger.info("menu_item_not_found", path=request.url.path, item_id=exc.item_id)
        return Response(status_code=404)

    @app.exception_handler(ConcurrencyConflict)
    async def conflict_handler(request: Request, exc: ConcurrencyConflict):
        logger.warning("menu_item_conflict", path=request.url.path, item_id=exc.item_id)
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("store_failure", path=request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("rate_limit_exceeded", path=request.url.path)
        return JSONResponse(
            status_code=429,
            content={"detail": "Rate limit exceeded. Please slow down."},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception", path=request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        checks: dict[str, dict[str, str]] = {}
        status_code = 200
        try:
            with anyio.fail_after(READY_TIMEOUT_SECONDS):
                await anyio.to_thread.run_sync(request.app.state.store.ping, abandon_on_cancel=True)
            checks["store"] = {"status": "ok"}
        except Exception as exc:  # noqa: BLE001
            checks["store"] = {"status": "error", "error": str(exc) or type(exc).__name__}
            status_code = 503

        overall = "ok" if status_code == 200 else "error"
        return JSONResponse(status_code=status_code, content={"status": overall, "checks": checks})

    app.include_router(menu_router, prefix=settings.api_prefix)
    return app


app = create_app()
