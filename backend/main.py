# main.py - Task Sharing API
# Features:
# - Explicit dependencies (database, identity verifier, event publisher) on app.state
# - Request correlation IDs
# - Structured error mapping
# - Health check with DB verification

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings
from database import Database
from errors import register_exception_handlers
from events import EventPublisher, LoggingEventPublisher
from identity import IdentityVerifier, JWTIdentityVerifier
from routers import tasks, users

VERSION = "1.0.0"

logger = logging.getLogger("taskshare")


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    )


def _check_startup_config(settings: Settings) -> bool:
    """Validate critical configuration on startup."""
    warnings = []

    if not settings.identity_jwt_key:
        warnings.append("⚠️  IDENTITY_JWT_KEY is not set - every authenticated request will be rejected")
    elif settings.identity_jwt_algorithms == ["HS256"] and len(settings.identity_jwt_key) < 32:
        warnings.append("⚠️  IDENTITY_JWT_KEY is shorter than 32 characters")

    if settings.is_production and settings.identity_audience is None:
        warnings.append("⚠️  IDENTITY_AUDIENCE not set - tokens issued for other audiences are accepted")

    for w in warnings:
        logger.warning(w)

    return len(warnings) == 0


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    verifier: Optional[IdentityVerifier] = None,
    publisher: Optional[EventPublisher] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    database = database or Database(settings.database_url, echo=settings.sql_echo)
    verifier = verifier or JWTIdentityVerifier(
        key=settings.identity_jwt_key,
        algorithms=settings.identity_jwt_algorithms,
        audience=settings.identity_audience,
        issuer=settings.identity_issuer,
    )
    publisher = publisher or LoggingEventPublisher()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 Starting Task Sharing API v{VERSION} ({settings.environment})")
        await database.create_all()
        logger.info("✅ Database initialized")
        _check_startup_config(settings)
        yield
        logger.info("🛑 Shutting down Task Sharing API...")
        await database.dispose()

    app = FastAPI(
        title="Task Sharing API",
        description="Personal task management with per-task sharing",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.database = database
    app.state.identity_verifier = verifier
    app.state.event_publisher = publisher

    # ============================================================
    # CORS
    # ============================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-Correlation-ID"],
        expose_headers=["X-Request-ID", "X-Correlation-ID"],
    )

    # ============================================================
    # MIDDLEWARE: Correlation IDs + Timing
    # ============================================================

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        correlation_id = request.headers.get("X-Correlation-ID", request_id)
        request.state.request_id = request_id
        request.state.correlation_id = correlation_id

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Response-Time"] = f"{duration:.4f}s"

        logger.info(
            f"{request.method} {request.url.path} → {response.status_code} "
            f"({duration:.3f}s) [rid={request_id[:8]}]"
        )
        return response

    # ============================================================
    # MIDDLEWARE: Security Headers
    # ============================================================

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    register_exception_handlers(app)

    # ============================================================
    # ROUTERS
    # ============================================================

    app.include_router(users.router)
    app.include_router(tasks.router)

    # ============================================================
    # HEALTH
    # ============================================================

    @app.get("/api/health")
    async def health_check():
        """Health check with database connectivity verification"""
        try:
            await database.ping()
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "database": "disconnected",
                    "error": str(e)[:200],
                },
            )
        return {"status": "healthy", "database": "connected", "version": VERSION}

    return app


_settings = Settings.from_env()
configure_logging(_settings)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=_settings.port,
        reload=not _settings.is_production,
    )
