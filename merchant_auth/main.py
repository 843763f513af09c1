"""FastAPI application - Merchant Auth.

Telegram Mini App authentication and session core:
- initData verification and find-or-create login
- Stateless session tokens revocable through a per-user security stamp
- Route gate for page routes, heartbeat, logout and global logout

Run with:
    uvicorn merchant_auth.main:create_app --factory
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from merchant_auth import __version__
from merchant_auth.config import Settings, get_logger, get_settings, setup_logging
from merchant_auth.domain.identity.exceptions import AuthError, MalformedInput, StoreUnavailable
from merchant_auth.domain.identity.repositories import UserStore
from merchant_auth.domain.shared.clock import Clock, utc_now
from merchant_auth.infrastructure.persistence.sqlalchemy import (
    SQLAlchemyUserStore,
    create_engine,
    create_session_factory,
    init_db,
)
from merchant_auth.presentation.api.container import AuthContainer, build_container
from merchant_auth.presentation.api.middleware import (
    RequestContextMiddleware,
    RouteGateMiddleware,
    unauthorized_response,
)
from merchant_auth.presentation.api.v1.routes import auth_router

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    user_store: UserStore | None = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """Application factory.

    Args:
        settings: Settings to use (defaults to ``get_settings()``).
        user_store: Pre-built store. When omitted, the lifespan creates the
            database engine and a SQLAlchemy store.
        clock: Time source shared by the token service and verifier.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    # ========================================================================
    # LIFESPAN EVENTS (startup/shutdown)
    # ========================================================================

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: create engine, tables and the auth container.
        Shutdown: dispose of the engine.
        """
        logger.info("application.startup.started")

        engine = None
        if getattr(app.state, "auth", None) is None:
            engine = create_engine(settings)
            await init_db(engine)
            logger.info("application.database.tables_created")

            store = SQLAlchemyUserStore(create_session_factory(engine))
            app.state.auth = build_container(settings, store, clock=clock)

        logger.info("application.startup.completed")

        yield

        logger.info("application.shutdown.started")
        if engine is not None:
            await engine.dispose()
        logger.info("application.shutdown.completed")

    app = FastAPI(
        title=settings.app_name,
        description="Telegram Mini App authentication and session management.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    if user_store is not None:
        app.state.auth = build_container(settings, user_store, clock=clock)

    # ========================================================================
    # MIDDLEWARE (last added is executed first)
    # ========================================================================

    app.add_middleware(RouteGateMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    _register_health_routes(app, settings)

    app.include_router(auth_router, prefix=settings.api_prefix)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MalformedInput)
    async def malformed_input_handler(request: Request, exc: MalformedInput) -> JSONResponse:
        logger.info("api.malformed_input", path=request.url.path, error=exc.message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "BadRequest", "message": exc.message},
        )

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        """Credential failures: 401 and a cleared cookie, no detail leaked."""
        logger.info("api.unauthorized", path=request.url.path, reason=exc.reason)
        container: AuthContainer | None = getattr(request.app.state, "auth", None)
        return unauthorized_response(container.cookie if container else None)

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        logger.error("api.store_unavailable", path=request.url.path, error=exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": "ServiceUnavailable",
                "message": "Authentication is temporarily unavailable. Please retry.",
            },
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("api.validation_error", path=request.url.path, errors=_jsonable_errors(exc))
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "details": _jsonable_errors(exc),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "api.unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "InternalServerError",
                "message": "An unexpected error occurred. Please try again later.",
            },
        )


def _jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw input (may contain initData)."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


def _register_health_routes(app: FastAPI, settings: Settings) -> None:
    @app.get("/health", tags=["Health"], summary="Health check")
    async def health_check() -> dict:
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        }

    @app.get("/health/ready", tags=["Health"], summary="Readiness check")
    async def readiness_check(request: Request) -> JSONResponse:
        """Readiness: the user store answers."""
        checks = {"user_store": "unknown"}
        healthy = True

        container: AuthContainer | None = getattr(request.app.state, "auth", None)
        if container is None:
            checks["user_store"] = "not initialized"
            healthy = False
        else:
            try:
                await container.user_store.ping()
                checks["user_store"] = "healthy"
            except StoreUnavailable as e:
                checks["user_store"] = f"unhealthy: {e.message[:50]}"
                healthy = False

        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "healthy" if healthy else "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "checks": checks,
            },
        )

    @app.get("/health/live", tags=["Health"], summary="Liveness check")
    async def liveness_check() -> dict:
        return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "merchant_auth.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
