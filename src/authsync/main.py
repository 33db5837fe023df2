"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.authsync.config import Settings, get_settings
from src.authsync.features.auth_sync import router as auth_sync_router
from src.authsync.features.auth_sync.service import SyncService
from src.authsync.services import PostHogService
from src.authsync.services.auth import (
    AuthGate,
    AuthSyncError,
    FirebaseTokenVerifier,
    JWKSCache,
    JWTValidator,
    TokenVerifier,
)
from src.authsync.services.database import (
    UserStore,
    create_engine,
    create_schema,
    create_session_factory,
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class HealthCheckResponse(BaseModel):
    """Health check response."""

    health: str = "OK"
    status: str = "ON"


class PermissiveCORSMiddleware(BaseHTTPMiddleware):
    """
    Allows every origin and answers any preflight directly.

    OPTIONS requests never reach the router: they get 204 with no body.
    Unhandled errors are rendered here so that 500s carry the headers too.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=status.HTTP_204_NO_CONTENT)
        else:
            try:
                response = await call_next(request)
            except Exception as e:
                response = await unhandled_error_handler(request, e)
        response.headers.update(CORS_HEADERS)
        return response


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def auth_sync_error_handler(request: Request, exc: AuthSyncError) -> JSONResponse:
    """Render domain errors as {"error": message}."""
    return _error_response(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are caller errors: 400 with the validation reason."""
    reasons = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    ]
    logger.info("Rejected malformed request", extra={"path": request.url.path, "reasons": reasons})
    return _error_response(status.HTTP_400_BAD_REQUEST, "; ".join(reasons) or "Invalid request")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (404, 405, ...) in the same error shape."""
    return _error_response(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the failure and hide its details from the caller."""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(
    settings: Settings | None = None,
    verifier: TokenVerifier | None = None,
    store: UserStore | None = None,
    analytics: PostHogService | None = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators that are not passed in are built during startup from
    settings: the database engine and user store, and the Firebase verifier
    (whose key set is fetched before the first request). Whatever startup
    builds, shutdown releases.

    Args:
        settings: Loaded settings; read from the environment when omitted
        verifier: Token verifier to use instead of the Firebase one
        store: User store to use instead of one on settings.database_url
        analytics: Analytics client; built from PostHog settings when omitted

    Raises:
        pydantic.ValidationError: If required configuration is missing
    """
    settings = settings or get_settings()
    analytics = analytics or PostHogService(settings.posthog_api_key, settings.posthog_host)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle (startup and shutdown)."""
        engine = None
        owned_verifier: FirebaseTokenVerifier | None = None
        user_store = store
        token_verifier = verifier

        # Startup
        if user_store is None:
            engine = create_engine(settings.database_url, echo=settings.db_echo)
            try:
                await create_schema(engine)
            except Exception as e:
                logger.error(
                    f"Failed to initialize database schema: {e}",
                    exc_info=True,
                    extra={"error_type": "database_init_failed"},
                )
                await engine.dispose()
                raise
            user_store = UserStore(create_session_factory(engine))

        if token_verifier is None:
            try:
                logger.info("Initializing Firebase token verifier")
                jwks_cache = JWKSCache(
                    jwks_url=settings.firebase_jwks_url,
                    cache_ttl=settings.jwks_cache_ttl_seconds,
                    timeout=settings.verify_timeout_seconds,
                )
                await jwks_cache.refresh_keys()
                owned_verifier = FirebaseTokenVerifier(
                    JWTValidator(
                        jwks_cache=jwks_cache,
                        issuer=settings.firebase_issuer,
                        audience=settings.firebase_project_id,
                        leeway=settings.jwt_leeway_seconds,
                    ),
                    timeout=settings.verify_timeout_seconds,
                )
                token_verifier = owned_verifier
                logger.info(
                    "Firebase token verifier initialized",
                    extra={
                        "jwks_url": settings.firebase_jwks_url,
                        "issuer": settings.firebase_issuer,
                    },
                )
            except Exception as e:
                logger.error(
                    f"Failed to initialize token verifier: {e}",
                    exc_info=True,
                    extra={"error_type": "verifier_init_failed"},
                )
                if engine is not None:
                    await engine.dispose()
                raise

        app.state.user_store = user_store
        app.state.token_verifier = token_verifier
        app.state.auth_gate = AuthGate(token_verifier, user_store, analytics)
        app.state.sync_service = SyncService(token_verifier, user_store, analytics)

        yield

        # Shutdown
        if owned_verifier is not None:
            await owned_verifier.close()
        if engine is not None:
            await engine.dispose()
            logger.info("Database engine disposed")
        analytics.shutdown()

    app = FastAPI(
        title="Auth Sync API",
        description="Firebase identity sync and profile API",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(PermissiveCORSMiddleware)

    app.add_exception_handler(AuthSyncError, auth_sync_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth_sync_router, prefix=settings.api_v1_prefix)

    @app.get("/health", response_model=HealthCheckResponse)
    @app.get(f"{settings.api_v1_prefix}/health", response_model=HealthCheckResponse)
    async def health_check() -> HealthCheckResponse:
        """Health check endpoint."""
        return HealthCheckResponse()

    return app


def run() -> None:
    """Console entry point: load configuration and serve."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting server on port {settings.port}")
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
