import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flextime.core.config import settings
from flextime.core.errors import (
    FlexTimeException,
    flextime_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from flextime.core.security import IdentityProvider, StaticTokenIdentityProvider
from flextime.routers import clock as clock_router
from flextime.routers import day_preferences as day_preferences_router
from flextime.routers import flex_time as flex_time_router
from flextime.routers import users as users_router
from flextime.schemas.common import HealthResponse
from flextime.services.week_clock import WeekClock
from flextime.store import DocumentStore, SqlDocumentStore, UnavailableDocumentStore, create_store

logger = logging.getLogger(__name__)


def setup_logging(is_dev: bool, level: str = "INFO") -> None:
    """
    App logs at LOG_LEVEL (DEBUG in dev); SQLAlchemy and driver logs at
    WARNING+ so queries and pool chatter stay out of the output.
    """
    app_level = logging.DEBUG if is_dev else getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "psycopg2",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app(
    store: Optional[DocumentStore] = None,
    clock: Optional[WeekClock] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    """Build the API. Anything not passed in is built from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = store if store is not None else create_store(settings.DATABASE_URL)
        app.state.clock = clock if clock is not None else WeekClock.from_settings(settings)
        app.state.identity_provider = (
            identity_provider
            if identity_provider is not None
            else StaticTokenIdentityProvider.from_string(settings.PARENT_TOKENS)
        )
        if isinstance(app.state.store, SqlDocumentStore):
            app.state.store.create_schema()
        logger.info(
            "Flex time API starting: env=%s store=%s tz=%s",
            settings.APP_ENV,
            type(app.state.store).__name__,
            app.state.clock.tz,
        )
        yield
        if isinstance(app.state.store, SqlDocumentStore) and store is None:
            app.state.store.dispose()

    app = FastAPI(
        title="Flex Time API",
        description=(
            "**Weekly flex time tracker**\n\n"
            "Parents award screen-time minutes in fixed increments up to a weekly cap; "
            "kids see the balance, a reset countdown, their streak, and vote on which "
            "weekend day hosts the viewing window.\n\n"
            "All error responses follow the `{code, message, details}` envelope."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers (most specific first) ---
    app.add_exception_handler(FlexTimeException, flextime_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --- Routers ---
    app.include_router(flex_time_router.router)
    app.include_router(day_preferences_router.router)
    app.include_router(clock_router.router)
    app.include_router(users_router.router)

    @app.get("/health", tags=["health"], summary="Health check", response_model=HealthResponse)
    def health():
        """
        Returns `{"status": "ok", "store": "ok"}` when the API and its store are
        reachable. Returns HTTP 503 when the store is down or not configured.
        """
        current = app.state.store
        if isinstance(current, UnavailableDocumentStore):
            store_status = "unconfigured"
        elif current.ping():
            store_status = "ok"
        else:
            store_status = "unreachable"

        if store_status != "ok":
            return JSONResponse(
                status_code=503,
                content={"status": "error", "store": store_status, "env": settings.APP_ENV},
            )
        return {"status": "ok", "store": "ok", "env": settings.APP_ENV}

    return app


setup_logging(settings.is_dev, settings.LOG_LEVEL)
app = create_app()
