"""
Flooring Catalog Import - Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog
from datetime import datetime

from config import settings, check_connection

logging.basicConfig(format="%(message)s", level=settings.log_level)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Check database connection
    """
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug
    )

    db_status = check_connection()
    if db_status["status"] == "healthy":
        logger.info(
            "database_connected",
            products=db_status["products_count"],
            profiles=db_status["profiles_count"]
        )
    else:
        logger.error(
            "database_connection_failed",
            error=db_status.get("error")
        )

    yield

    logger.info("application_shutting_down")


app = FastAPI(
    title="Flooring Catalog Import",
    description="Reconcile vendor price lists against the product catalog",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status and database connection state
    """
    db_status = check_connection()

    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "database": db_status
    }


@app.get("/")
async def root():
    """API information and available endpoints."""
    return {
        "name": "Flooring Catalog Import API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "profiles": "/api/import/profiles",
            "parse": "/api/import/parse",
            "map": "/api/import/map",
            "preview": "/api/import/preview",
            "review": "/api/import/review",
            "execute": "/api/import/execute"
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
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
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.imports import router as imports_router

app.include_router(imports_router)  # Prefix already in router


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
