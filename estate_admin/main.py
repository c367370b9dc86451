# ================================
# MAIN APPLICATION (main.py)
# ================================

from datetime import datetime, timezone
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.openapi.utils import get_openapi
from contextlib import asynccontextmanager
from sqlalchemy import text

# Core imports
from estate_admin.config import settings
from estate_admin.core.exceptions import AppException, ConcurrencyConflictError
from estate_admin.core.middleware import (
    RequestContextMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware
)
from estate_admin.api import API_VERSION, API_DESCRIPTION
from estate_admin.schemas.base import ErrorResponse

# API Routes
from estate_admin.api.v1 import properties, reservations, notifications, users, dashboard

import logging
import uvicorn

# ================================
# LOGGING CONFIGURATION
# ================================

logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ================================
# APPLICATION LIFECYCLE
# ================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    
    # Startup
    logger.info(f"Starting {settings.APP_NAME}")
    await startup_tasks()
    
    yield
    
    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}")
    from estate_admin.core.database import engine
    engine.dispose()

async def startup_tasks():
    """Tasks to run on application startup"""
    await initialize_database()
    await seed_roles_and_accounts()

async def initialize_database():
    """Initialize database connection and run migrations"""
    from estate_admin.core.database import engine
    
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection established")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    
    # Run Alembic migrations in production
    if not settings.DEBUG:
        await run_database_migrations()

async def run_database_migrations():
    """Run Alembic database migrations"""
    from alembic.config import Config
    from alembic import command
    
    try:
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed")
    except Exception as e:
        logger.error(f"Database migration failed: {e}")
        raise

async def seed_roles_and_accounts():
    """Create the default roles and any configured seed accounts"""
    from estate_admin.core.database import SessionLocal
    from estate_admin.services.seed_service import SeedService
    
    with SessionLocal() as db:
        SeedService.seed(db)

# ================================
# FASTAPI APPLICATION
# ================================

app = FastAPI(
    title=settings.APP_NAME,
    version=API_VERSION,
    description=API_DESCRIPTION,
    docs_url="/docs" if settings.DEBUG else None,  # Disable docs in production
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)

# ================================
# MIDDLEWARE CONFIGURATION
# ================================

# Security Headers
app.add_middleware(SecurityHeadersMiddleware)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"]
)

# Request Logging
app.add_middleware(RequestLoggingMiddleware)

# Request Context (last added = outermost)
app.add_middleware(RequestContextMiddleware)

# ================================
# EXCEPTION HANDLERS
# ================================

@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handler für Application-spezifische Exceptions"""
    content = {
        "detail": exc.detail,
        "error_code": exc.error_code,
        "request_id": getattr(request.state, "request_id", None)
    }
    if isinstance(exc, ConcurrencyConflictError):
        content["retryable"] = True
    
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_code}")
    
    return JSONResponse(status_code=exc.status_code, content=content)

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handler für Standard HTTP Exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "request_id": getattr(request.state, "request_id", None)
        }
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handler für unbehandelte Exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "request_id": getattr(request.state, "request_id", None)
        }
    )

# ================================
# HEALTH CHECK ENDPOINTS
# ================================

@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

@app.get("/ready", tags=["Health"])
async def readiness_check():
    """Readiness check: database reachable"""
    from estate_admin.core.database import engine
    
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Readiness check failed: database unreachable", exc_info=True)
        raise HTTPException(status_code=503, detail="Service not ready")
    
    return {"status": "ready"}

# ================================
# API ROUTES
# ================================

app.include_router(
    properties.router,
    prefix="/api/v1/properties",
    tags=["Properties"],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Insufficient permissions"},
        404: {"description": "Property not found"}
    }
)

app.include_router(
    reservations.router,
    prefix="/api/v1",
    tags=["Reservations"],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Insufficient permissions"},
        404: {"description": "Reservation or property not found"},
        409: {
            "description": "Slot taken, slot conflict, invalid transition or concurrent modification",
            "model": ErrorResponse
        }
    }
)

app.include_router(
    notifications.router,
    prefix="/api/v1/notifications",
    tags=["Notifications"],
    responses={
        401: {"description": "Authentication required"},
        404: {"description": "Notification not found"}
    }
)

app.include_router(
    users.router,
    prefix="/api/v1/users",
    tags=["Users"],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Admin role required"},
        404: {"description": "User not found"}
    }
)

app.include_router(
    dashboard.router,
    prefix="/api/v1/dashboard",
    tags=["Dashboard"],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Staff role required"}
    }
)

# ================================
# ROOT ENDPOINT
# ================================

@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": API_VERSION,
        "docs_url": "/docs" if settings.DEBUG else None,
        "health_url": "/health",
        "available_endpoints": {
            "properties": "/api/v1/properties",
            "reservations": "/api/v1/reservations",
            "notifications": "/api/v1/notifications",
            "users": "/api/v1/users",
            "dashboard": "/api/v1/dashboard"
        }
    }

# ================================
# CUSTOM OPENAPI SCHEMA
# ================================

def custom_openapi():
    """Custom OpenAPI schema with security definitions"""
    if app.openapi_schema:
        return app.openapi_schema
    
    openapi_schema = get_openapi(
        title=settings.APP_NAME,
        version=API_VERSION,
        description=API_DESCRIPTION,
        routes=app.routes,
    )
    
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "JWT Bearer token"
        }
    }
    
    for path, path_item in openapi_schema["paths"].items():
        # Skip public endpoints
        if path in ["/", "/health", "/ready"]:
            continue
        
        for method, operation in path_item.items():
            if method in ["get", "post", "put", "delete", "patch"]:
                operation["security"] = [{"BearerAuth": []}]
    
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

# ================================
# DEVELOPMENT SERVER
# ================================

if __name__ == "__main__":
    uvicorn.run(
        "estate_admin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        access_log=True
    )
