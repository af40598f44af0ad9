"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from oauthgate.api.routers import auth as auth_router
from oauthgate.api.routers import profile as profile_router
from oauthgate.api.routers import root as root_router
from oauthgate.core.config import APP_VERSION, Settings, get_settings
from oauthgate.core.directory import InMemoryUserDirectory, UserDirectory
from oauthgate.core.dispatcher import CallbackDispatcher, OAuthProvider
from oauthgate.core.errors import GatewayError
from oauthgate.core.logging import configure_logging, get_logger
from oauthgate.core.provider import GoogleOAuthProvider
from oauthgate.core.relay import BackendRelay
from oauthgate.core.resolver import SessionResolver
from oauthgate.core.sessions import InMemorySessionStore
from oauthgate.core.sql_directory import SqlUserDirectory

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    configure_logging()
    settings: Settings = app.state.settings
    directory = app.state.directory
    logger.info(
        "Starting OAuthGate",
        environment=settings.app_env,
        directory=type(directory).__name__,
        relay=settings.backend_url or "disabled",
    )

    if isinstance(directory, SqlUserDirectory):
        await directory.create_schema()

    yield

    if isinstance(directory, SqlUserDirectory):
        await directory.close()
    logger.info("OAuthGate stopped")


def _build_directory(settings: Settings) -> UserDirectory:
    if settings.database_url:
        return SqlUserDirectory.from_url(settings.database_url)
    return InMemoryUserDirectory()


def _register_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            body = {"error": "Route not found"}
        else:
            body = {"error": exc.detail}
        return JSONResponse(body, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            {"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path, method=request.method)
        return JSONResponse(
            {
                "error": "Something went wrong!",
                "message": str(exc) if settings.is_development else "Internal server error",
            },
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def create_app(
    settings: Settings | None = None,
    *,
    directory: UserDirectory | None = None,
    provider: OAuthProvider | None = None,
    relay: BackendRelay | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="OAuthGate",
        description="Google OAuth gateway with registration gating",
        version=APP_VERSION,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    directory = directory if directory is not None else _build_directory(settings)
    provider = provider if provider is not None else GoogleOAuthProvider(settings)
    if relay is None and settings.relay_enabled:
        relay = BackendRelay(settings.backend_url, timeout=settings.relay_timeout_seconds)

    app.state.settings = settings
    app.state.directory = directory
    app.state.sessions = InMemorySessionStore(settings.session_max_age_seconds)
    app.state.provider = provider
    app.state.relay = relay
    app.state.dispatcher = CallbackDispatcher(
        provider,
        SessionResolver(directory),
        client_url=settings.client_url,
        relay=relay,
    )

    # Added last runs outermost: CORS wraps the session layer
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.cookie_secure,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app, settings)

    app.include_router(root_router.router)
    app.include_router(auth_router.router)
    app.include_router(profile_router.router)

    return app


app = create_app()
