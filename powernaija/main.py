"""
PowerNaija API Service

Energy token marketplace: wallets, token purchases, usage tracking and
carbon credit monetization.
"""

import logging
import time
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from firebase_admin import auth as firebase_auth
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from powernaija.api.v1.router import api_router
from powernaija.core.config import Settings, get_settings
from powernaija.core.errors import AppError, error_from_integrity
from powernaija.core.firebase import init_firebase
from powernaija.core.logging import configure_logging
from powernaija.db.session import Database
from powernaija.services.auth import (
    ChainedCredentialVerifier,
    FirebaseCredentialVerifier,
    JWTCredentialVerifier,
    TokenIssuer,
)
from powernaija.services.chatbot import build_chat_backend
from powernaija.services.notifications import FirebasePushSender
from powernaija.services.payments import PaystackGateway

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    settings: Settings = app.state.settings
    database: Database = app.state.database
    logger.info("Starting up %s (%s)...", settings.PROJECT_NAME, settings.ENVIRONMENT)

    try:
        if settings.AUTO_CREATE_SCHEMA:
            database.create_all()
        database.ping()
        logger.info("Database connection established")
    except Exception:
        # Keep serving so /health can report the problem
        logger.exception("Database connection failed")

    yield

    logger.info("Shutting down %s...", settings.PROJECT_NAME)
    if app.state.redis is not None:
        await app.state.redis.aclose()
    database.dispose()


def _validation_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        # Drop the "body"/"query" location prefix
        location = [str(part) for part in error.get("loc", ())[1:]]
        field = ".".join(location) or "request"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    settings: Settings = app.state.settings

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Validation failed",
                "code": "VALIDATION_ERROR",
                "errors": _validation_errors(exc),
            },
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Constraint violation on %s: %s", request.url.path, exc.orig)
        error = error_from_integrity(exc)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        content = {"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"}
        if not settings.is_production:
            content["detail"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=500, content=content)


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Build the API with its collaborators wired from ``settings``."""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    firebase_app = init_firebase(settings)
    issuer = TokenIssuer(settings)
    firebase_verifier = None
    if firebase_app is not None:
        firebase_verifier = FirebaseCredentialVerifier(
            lambda token: firebase_auth.verify_id_token(token, app=firebase_app)
        )
    verifiers = [JWTCredentialVerifier(issuer)]
    if firebase_verifier is not None:
        verifiers.append(firebase_verifier)

    app.state.settings = settings
    app.state.database = database or Database(settings.DATABASE_URL)
    app.state.credential_verifier = ChainedCredentialVerifier(verifiers)
    app.state.firebase_verifier = firebase_verifier
    app.state.payment_gateway = PaystackGateway(settings) if settings.PAYSTACK_SECRET_KEY else None
    app.state.chat_backend = build_chat_backend(settings)
    app.state.push_sender = FirebasePushSender(firebase_app) if firebase_app else None
    app.state.redis = (
        redis.from_url(settings.REDIS_URL, decode_responses=True, socket_connect_timeout=1)
        if settings.RATE_LIMIT_ENABLED
        else None
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        try:
            database_ok = app.state.database.ping()
        except Exception:
            logger.exception("Health check database ping failed")
            database_ok = False
        return {
            "status": "healthy" if database_ok else "degraded",
            "service": "powernaija-api",
            "version": settings.VERSION,
            "database": "connected" if database_ok else "unavailable",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("powernaija.main:app", host="0.0.0.0", port=8000, reload=True)
