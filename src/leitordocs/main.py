"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from leitordocs import __version__
from leitordocs.api.deps import build_analysis_store
from leitordocs.api.middleware.auth import build_auth_provider
from leitordocs.api.middleware.csrf import setup_csrf
from leitordocs.api.ratelimit import limiter, rate_limit_exceeded_handler
from leitordocs.api.router import api_router
from leitordocs.config import get_settings
from leitordocs.infrastructure.ai.factory import close_ai_factory, get_ai_factory
from leitordocs.infrastructure.supabase import SupabaseRestClient
from leitordocs.observability.metrics import setup_metrics
from leitordocs.shared.exceptions import (
    AIRateLimitError,
    AuthenticationError,
    CreditDebitError,
    CreditsUnavailableError,
    ExternalServiceError,
    FileTooLargeError,
    InsufficientCreditsError,
    LeitorDocsError,
    UnauthorizedError,
    ValidationError,
)
from leitordocs.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown events."""
    setup_logging()
    logger.info("leitordocs_starting", version=__version__)

    # Shared resources (avoid per-request client creation); tests may preset them
    settings = get_settings()
    if getattr(app.state, "auth_provider", None) is None:
        app.state.auth_provider = build_auth_provider(settings)
    if getattr(app.state, "supabase", None) is None:
        app.state.supabase = SupabaseRestClient(settings)
    if getattr(app.state, "analysis_store", None) is None:
        app.state.analysis_store = build_analysis_store()
    if getattr(app.state, "ai_factory", None) is None:
        app.state.ai_factory = get_ai_factory()

    if not app.state.ai_factory.available_providers():
        logger.warning("no_ai_provider_configured")

    yield

    logger.info("leitordocs_stopping")
    await app.state.auth_provider.close()
    await app.state.supabase.close()
    await close_ai_factory()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Leitor de Docs API",
        description="AI reading and renaming of financial receipts",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # CSRF is registered first so CORS (added after) wraps it and
    # preflight requests never reach the check
    setup_csrf(app, settings)

    if settings.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", settings.csrf_header_name],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    # Observability
    setup_metrics(app)

    return app


def _error(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers.

    Every error body has the shape ``{"success": false, "error": <message>}``.
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        _ = request
        response = _error(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        _ = request
        return _error(400, "Dados da requisição inválidos", details=jsonable_errors(exc))

    @app.exception_handler(FileTooLargeError)
    async def file_too_large_handler(request: Request, exc: FileTooLargeError) -> JSONResponse:
        _ = request
        return _error(413, exc.message)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        _ = request
        return _error(400, exc.message, details=exc.details)

    @app.exception_handler(AuthenticationError)
    async def auth_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
        _ = request
        return _error(401, exc.message)

    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
        _ = request
        return _error(403, exc.message)

    @app.exception_handler(InsufficientCreditsError)
    async def insufficient_credits_handler(
        request: Request, exc: InsufficientCreditsError
    ) -> JSONResponse:
        _ = request
        return _error(403, exc.message, **exc.details)

    @app.exception_handler(CreditsUnavailableError)
    async def credits_unavailable_handler(
        request: Request, exc: CreditsUnavailableError
    ) -> JSONResponse:
        _ = request
        return _error(503, exc.message)

    @app.exception_handler(CreditDebitError)
    async def credit_debit_handler(request: Request, exc: CreditDebitError) -> JSONResponse:
        _ = request
        return _error(500, exc.message)

    @app.exception_handler(AIRateLimitError)
    async def ai_rate_limit_handler(request: Request, exc: AIRateLimitError) -> JSONResponse:
        _ = request
        return _error(429, exc.message)

    @app.exception_handler(ExternalServiceError)
    async def external_service_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        _ = request
        logger.error("external_service_error", error=exc.message, details=exc.details)
        return _error(502, exc.message)

    @app.exception_handler(LeitorDocsError)
    async def leitordocs_error_handler(request: Request, exc: LeitorDocsError) -> JSONResponse:
        _ = request
        logger.error("unhandled_error", error=exc.message, details=exc.details)
        return _error(500, "Ocorreu um erro interno")

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        _ = request
        logger.exception("unexpected_error", error=str(exc))
        return _error(500, "Ocorreu um erro inesperado")


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


# Create app instance
app = create_app()
