"""
FastAPI application for showroom appointment scheduling

Booking, availability and admin scheduling over HTTP; emails and the
reminder pass run in Celery workers
"""
import logging
from collections import defaultdict
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from app.api.middleware.rate_limit_middleware import RateLimitMiddleware
from app.api.v1.router import api_v1_router
from app.config.settings import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.middleware import correlation_id_middleware, request_logging_middleware
from app.core.monitoring import health_router
from app.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    logger.info(f"🚀 {settings.APP_NAME} starting up (timezone {settings.BUSINESS_TIMEZONE})")

    if settings.DEBUG:
        routes_by_tag = defaultdict(list)
        for route in app.routes:
            if isinstance(route, APIRoute):
                tag = route.tags[0] if route.tags else "other"
                for method in sorted(route.methods):
                    routes_by_tag[tag].append((method, route.path))

        for tag, routes in sorted(routes_by_tag.items()):
            logger.debug(f"[{tag.upper()}]")
            for method, path in sorted(routes, key=lambda r: (r[1], r[0])):
                logger.debug(f"  {method:8} {path}")

    if not settings.CALENDAR_TOKEN:
        logger.warning("⚠️ CALENDAR_TOKEN not set, calendar feed disabled")
    if not settings.CRON_SECRET:
        logger.warning("⚠️ CRON_SECRET not set, reminder endpoint disabled")

    yield

    # Shutdown
    logger.info(f"🛑 {settings.APP_NAME} shutting down...")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Showroom appointment booking, availability and calendar feed",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    register_exception_handlers(app)

    app.add_middleware(RateLimitMiddleware, max_requests=10, window_seconds=60)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1/",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
