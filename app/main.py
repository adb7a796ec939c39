"""Bilingual AI Chat API - Main Application Module.

This module initializes the FastAPI application with proper configuration,
middleware, routing, and lifecycle management for the bilingual chat service.
"""

import logging
import re
import sys
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

import jwt
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from app.core.config import ConfigValidator, settings
from app.core.events import ChatEventBroker
from app.core.i18n import get_request_language, translate
from app.core.logging_config import setup_logging
from app.core.rate_limit import limiter
from app.database import engine, get_db
from app.domains.ai.service import AIService
from models import Base, utcnow

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle events."""
    setup_logging()
    logger.info(f"🚀 Starting {settings.app_name} ({settings.environment.value})...")

    # Development mode: Auto-create tables if they don't exist
    # Production: Use Alembic migrations (alembic upgrade head)
    if settings.is_development:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Database tables created/verified")
    else:
        logger.info("🏭 Use 'alembic upgrade head' to manage database schema")

    app.state.ai_service = AIService.from_settings()
    app.state.event_broker = ChatEventBroker()

    yield

    logger.info("🛑 Shutting down...")
    await app.state.event_broker.close()
    await app.state.ai_service.close()
    await engine.dispose()
    logger.info("✅ Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Bilingual (English/Arabic) AI chat backend",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.limiter = limiter

    # Add middleware
    setup_middleware(app)

    # Add exception handlers
    setup_exception_handlers(app)

    # Include routers
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        request_id = getattr(request.state, "request_id", None)
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms",
            extra={"request_id": request_id},
        )
        return response

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # OAuth handoff only; API auth is bearer tokens
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        max_age=10 * 60,
        same_site="lax",
        https_only=settings.is_production,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
    )


def error_response(
    request: Request,
    status_code: int,
    message: str,
    error_code: str,
    details=None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "status": "error",
            "message": message,
            "error_code": error_code,
            "details": details,
            "timestamp": utcnow().isoformat(),
            "path": request.url.path,
            "method": request.method,
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


def _conflict_field(exc: IntegrityError) -> str:
    text_ = str(exc.orig)
    # PostgreSQL: Key (email)=(...); SQLite: UNIQUE constraint failed: users.email
    match = re.search(r"Key \((\w+)\)", text_) or re.search(r"failed: \w+\.(\w+)", text_)
    return match.group(1) if match else "value"


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        language = get_request_language(request)
        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            key = exc.detail.get("message_key")
            message = exc.detail["message"]
            if key and translate(key, language) != key:
                message = translate(key, language)
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        logger.warning(
            f"{request.method} {request.url.path} -> {exc.status_code} {error_code}",
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return error_response(
            request, exc.status_code, message, error_code, details, getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", []) if part != "body"),
                "message": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            for error in exc.errors()
        ]
        return error_response(
            request,
            400,
            translate("errors.validation", get_request_language(request)),
            "VALIDATION_ERROR",
            errors,
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        field = _conflict_field(exc)
        return error_response(
            request,
            409,
            translate("errors.conflict", get_request_language(request), field=field),
            "CONFLICT",
            {"field": field},
        )

    @app.exception_handler(jwt.ExpiredSignatureError)
    async def expired_token_handler(request: Request, exc: jwt.ExpiredSignatureError):
        return error_response(
            request,
            401,
            translate("auth.token_expired", get_request_language(request)),
            "TOKEN_EXPIRED",
        )

    @app.exception_handler(jwt.InvalidTokenError)
    async def invalid_token_handler(request: Request, exc: jwt.InvalidTokenError):
        return error_response(
            request,
            401,
            translate("auth.invalid_token", get_request_language(request)),
            "INVALID_TOKEN",
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        # detail carries the limit's error_message, a catalog key
        item = exc.limit.limit
        headers = {
            "Retry-After": str(item.get_expiry()),
            "X-RateLimit-Limit": str(item.amount),
            "X-RateLimit-Remaining": "0",
        }
        logger.warning(f"Rate limit exceeded on {request.url.path}: {item}")
        return error_response(
            request,
            429,
            translate(exc.detail, get_request_language(request)),
            "RATE_LIMIT_EXCEEDED",
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        details = None
        if settings.is_development:
            details = {"stack": traceback.format_exception(type(exc), exc, exc.__traceback__)}
        return error_response(
            request,
            500,
            translate("errors.internal", get_request_language(request)),
            "INTERNAL_ERROR",
            details,
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    # Import routers
    from app.domains.auth.controller import router as auth_router
    from app.domains.chat.controller import router as chat_router
    from app.domains.chat.websocket import router as ws_router
    from app.domains.user.controller import router as user_router

    @app.get("/health")
    async def health_check():
        """Liveness probe."""
        return {
            "status": "OK",
            "timestamp": utcnow().isoformat(),
            "environment": settings.environment.value,
        }

    @app.get("/api/status")
    async def api_status(db: AsyncSession = Depends(get_db)):
        """Readiness probe with a database round trip."""
        try:
            await db.execute(text("SELECT 1"))
            database = "connected"
        except SQLAlchemyError as e:
            logger.error(f"Database check failed: {e}")
            database = "disconnected"

        return JSONResponse(
            status_code=200 if database == "connected" else 503,
            content={
                "status": "operational" if database == "connected" else "degraded",
                "version": settings.version,
                "database": database,
                "features": ConfigValidator.get_feature_status(),
                "timestamp": utcnow().isoformat(),
            },
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "Bilingual AI chat with English and Arabic support",
            "docs_url": "/docs" if settings.is_development else None,
        }

    # Include domain routers
    app.include_router(auth_router)
    app.include_router(chat_router)
    app.include_router(user_router)
    app.include_router(ws_router)

    uploads = Path(settings.upload_dir)
    uploads.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=uploads), name="uploads")


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
