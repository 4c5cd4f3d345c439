"""
FastAPI main application with DDD architecture
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.dependencies import get_notification_publisher
from .api.responses import error_response
from .api.router import api_router
from .core.config import settings
from .core.logging import setup_logging
from .db.database import SessionLocal, create_tables

# Import all ORM models to ensure relationships are resolved
from .infrastructure import orm  # noqa: F401


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(settings.LOG_LEVEL)
    if settings.TESTING or settings.DATABASE_URL.startswith("sqlite"):
        # Local SQLite runs bootstrap the schema; other databases use migrations
        await create_tables()
    logger.info("Starting %s %s", settings.PROJECT_NAME, settings.VERSION)
    yield
    await get_notification_publisher().drain()
    logger.info("Shutting down %s", settings.PROJECT_NAME)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.DESCRIPTION,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, f"Invalid request: {fields}", "VALIDATION_ERROR"
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An internal error occurred. Please try again later.",
            "INTERNAL_ERROR",
        )

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/health")
    async def health_check():
        """Health check endpoint that verifies database connectivity"""
        try:
            async with SessionLocal() as session:
                await session.execute(text("SELECT 1"))
            db_status = "healthy"
        except SQLAlchemyError as e:
            logger.error("Database health check failed: %s", e)
            db_status = "unhealthy"
        return {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "database": db_status,
            "version": settings.VERSION,
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "ekomarket.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
