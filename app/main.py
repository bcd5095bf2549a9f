import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse

from app.core.config import Settings, get_settings
from app.core.logging_config import configure_logging
from app.db.session import build_engine, build_session_factory, init_models
from routers import enhance, usage
from services.enhancer import EnhancementLimits, EnhancementService
from services.generation_backend import GenerationBackend, OfflineGenerationBackend, OpenAIGenerationBackend
from services.usage_gate import UsageGate

logger = logging.getLogger(__name__)


def build_backend(settings: Settings) -> GenerationBackend | None:
    if settings.generation_backend == "offline":
        logger.info("Using offline generation backend (test mode)")
        return OfflineGenerationBackend()
    if not settings.openai_api_key:
        logger.warning("OpenAI API key missing; enhancement requests will be rejected")
        return None
    return OpenAIGenerationBackend(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
        max_retries=settings.openai_max_retries,
    )


def build_limits(settings: Settings) -> EnhancementLimits:
    return EnhancementLimits(
        max_input_tokens=settings.max_input_tokens,
        tokens_per_word=settings.tokens_per_word,
        output_token_floor=settings.output_token_floor,
        output_token_ceiling=settings.output_token_ceiling,
        output_expansion_factor=settings.output_expansion_factor,
        tolerance_ratio=settings.tolerance_ratio,
        tolerance_floor_words=settings.tolerance_floor_words,
        generation_timeout_seconds=settings.generation_timeout_seconds,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "Invalid request.")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    engine = build_engine(settings.async_database_uri)
    session_factory = build_session_factory(engine)
    usage_gate = UsageGate(
        session_factory,
        guest_max_messages=settings.guest_daily_messages,
        daily_free_messages=settings.user_daily_free_messages,
    )
    backend = build_backend(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await init_models(engine)
        yield
        await engine.dispose()

    docs_url = "/docs" if settings.enable_docs else None
    redoc_url = "/redoc" if settings.enable_docs else None
    openapi_url = "/openapi.json" if settings.enable_docs else None
    app = FastAPI(
        title=settings.project_name,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.usage_gate = usage_gate
    app.state.enhancement_service = (
        EnhancementService(backend, usage_gate, build_limits(settings)) if backend is not None else None
    )

    if settings.environment == "production":
        app.add_middleware(HTTPSRedirectMiddleware)

    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", settings.user_id_header],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(_: Request, exc: RateLimitExceeded) -> JSONResponse:
        return JSONResponse(status_code=429, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):  # type: ignore[no-untyped-def]
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["X-XSS-Protection"] = "0"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        return response

    app.include_router(enhance.router, prefix=settings.api_v1_prefix)
    app.include_router(usage.router, prefix=settings.api_v1_prefix)
    return app
