"""
Channel SKU Mapping Service: application entry point.

Run locally with `python main.py` or `uvicorn main:app --reload`.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from config import settings, check_connection
from exceptions import AppError
from routes import channel_mappings_router

API_PREFIX = "/api/channel-sku-mappings"


def configure_logging() -> None:
    """Route structlog through stdlib logging; JSON in production."""
    logging.basicConfig(format="%(message)s", level=settings.log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.is_production
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the store state on startup. The app still starts if it is down."""
    logger.info(
        "application_starting",
        environment=settings.environment,
        mappings_table=settings.mappings_table,
        batch_size=settings.upload_batch_size
    )

    db_status = check_connection()
    if db_status["status"] == "healthy":
        logger.info(
            "database_connected",
            mappings=db_status["mappings_count"],
            products=db_status["products_count"]
        )
    else:
        logger.error("database_connection_failed", error=db_status.get("error"))

    yield

    logger.info("application_shutting_down")


app = FastAPI(
    title="Channel SKU Mapping Service",
    description="Channel SKU mappings with bulk CSV upload for marketplace integrations",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(
    channel_mappings_router,
    prefix=API_PREFIX,
    tags=["Channel SKU Mappings"]
)


# ===================
# SERVICE ENDPOINTS
# ===================

@app.get("/health")
async def health_check():
    """Store reachability plus the active upload limits."""
    db_status = check_connection()

    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "database": db_status,
        "upload": {
            "batch_size": settings.upload_batch_size,
            "preview_rows": settings.preview_row_limit,
        },
    }


@app.get("/")
async def root():
    return {
        "name": "Channel SKU Mapping API",
        "version": app.version,
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "mappings": API_PREFIX,
            "upload": f"{API_PREFIX}/upload",
            "upload_preview": f"{API_PREFIX}/upload/preview",
            "template": f"{API_PREFIX}/template",
            "export": f"{API_PREFIX}/export",
        },
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """AppErrors that escape a route still get the standard error body."""
    logger.warning(
        "app_error",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
