"""Application factory for the FastAPI service."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import PROJECT_ROOT, Settings, get_settings
from .errors import ServiceError
from .routers.auth import router as auth_router
from .routers.clips import router as clips_router
from .routers.tts import router as tts_router
from .routers.usage import router as usage_router
from .routers.voices import router as voices_router
from .services.accounts import AccountService
from .services.clips import ClipHistoryService
from .services.sessions import SessionTokenService
from .services.synthesis import SynthesisGateway
from .services.tts import TTSProvider, build_provider, resolve_from_settings
from .services.usage import UsageLedger
from .storage import create_store

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SEVERITY_LEVELS = {
    "warning": logging.INFO,
    "error": logging.WARNING,
    "fatal": logging.ERROR,
}


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT))
        handlers.append(file_handler)

    # Always add console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT))
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger("voiceclip").setLevel(log_level)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(log_level)

    # Optionally quiet down noisy third-party libraries
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
        logger.log(
            _SEVERITY_LEVELS.get(exc.severity, logging.WARNING),
            "%s %s -> %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        body_level = any(
            error.get("type") == "json_invalid" or tuple(error.get("loc", ())) == ("body",)
            for error in errors
        )
        message = "Request body must be valid JSON." if body_level else "Invalid request."
        logger.info("Rejected request to %s: %s", request.url.path, message)
        return _error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed."
        return _error_response(exc.status_code, detail)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Internal server error.")


def create_app(
    settings: Settings | None = None,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    # Configure logging first thing
    _configure_logging()

    settings = settings or get_settings()

    store = create_store(settings, PROJECT_ROOT)
    http_client = httpx.AsyncClient(transport=http_transport)

    accounts = AccountService(store, iterations=settings.password_hash_iterations)
    sessions = SessionTokenService(
        settings.session_secret_value,
        ttl_seconds=settings.session_ttl_seconds,
    )
    ledger = UsageLedger(store)
    clip_history = ClipHistoryService(store)

    def provider_factory() -> TTSProvider:
        return build_provider(settings, http_client)

    gateway = SynthesisGateway(provider_factory, ledger, clip_history)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.initialize()
        logger.info(
            "Serving with %s storage and %s provider",
            settings.storage_backend,
            resolve_from_settings(settings),
        )
        try:
            yield
        finally:
            try:
                await asyncio.wait_for(http_client.aclose(), timeout=10.0)
            except asyncio.TimeoutError:
                logger.warning("HTTP client shutdown timed out after 10s")
            await store.close()

    app = FastAPI(
        title="Voice Clip Backend",
        version="0.1.0",
        description="Text-to-speech clips with accounts, history and daily quotas.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.http_client = http_client
    app.state.account_service = accounts
    app.state.session_service = sessions
    app.state.usage_ledger = ledger
    app.state.clip_history = clip_history
    app.state.provider_factory = provider_factory
    app.state.synthesis_gateway = gateway

    allowed_origin = settings.allowed_origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[allowed_origin],
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["X-Usage-Used", "X-Usage-Limit", "Content-Disposition"],
        max_age=86400,
    )

    _install_exception_handlers(app)

    app.include_router(voices_router)
    app.include_router(tts_router)
    app.include_router(auth_router)
    app.include_router(clips_router)
    app.include_router(usage_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {
            "status": "ok",
            "provider": resolve_from_settings(settings),
            "storage": settings.storage_backend,
        }

    return app


__all__ = ["create_app"]
