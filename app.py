"""
University magazine submission portal API.
"""
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
from fastapi_mail import FastMail, ConnectionConfig

import config
from database.connection import Database
from core.exceptions import PortalError
from core.logger import logger
from middleware.security import (
    RateLimitMiddleware, SecurityHeadersMiddleware, RequestLogMiddleware,
    setup_cors, setup_trusted_hosts
)
from middleware.auth_middleware import AuthRequiredMiddleware
from middleware.page_visits import PageVisitMiddleware
from services.settings_service import ensure_roles
from routers.auth import router as auth_router
from routers.users import router as users_router
from routers.faculties import router as faculties_router
from routers.submissions import router as submissions_router
from routers.public import router as public_router
from routers.admin import router as admin_router
from routers.manager import router as manager_router
from routers.coordinator import router as coordinator_router


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for FastAPI app.
    Initialize database, reference data, upload directory and mail on startup.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {config.APP_NAME}...")
    logger.info("=" * 60)

    # Initialize database
    try:
        config.db = Database(
            database_url=config.DATABASE_URL,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW
        )
        config.db.create_tables()
        with config.db.get_session() as session:
            ensure_roles(session)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        raise

    config.UPLOADS_DIR.mkdir(parents=True, exist_ok=True)

    # Initialize FastAPI-Mail for submission notifications
    if config.SMTP_USER and config.SMTP_PASSWORD:
        try:
            mail_conf = ConnectionConfig(
                MAIL_USERNAME=config.SMTP_USER,
                MAIL_PASSWORD=config.SMTP_PASSWORD,
                MAIL_FROM=config.SMTP_FROM_EMAIL or config.SMTP_USER,
                MAIL_FROM_NAME=config.SMTP_FROM_NAME,
                MAIL_PORT=config.SMTP_PORT,
                MAIL_SERVER=config.SMTP_HOST,
                MAIL_STARTTLS=config.SMTP_USE_TLS,
                MAIL_SSL_TLS=config.SMTP_USE_SSL,
                USE_CREDENTIALS=True,
                VALIDATE_CERTS=True,
            )
            app.state.mail = FastMail(mail_conf)
            logger.info("FastAPI-Mail initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize FastAPI-Mail: {e}", exc_info=True)
            app.state.mail = None
    else:
        logger.warning("SMTP credentials not set (SMTP_USER/SMTP_PASSWORD). Notification emails will not be sent.")
        app.state.mail = None

    logger.info("=" * 60)
    logger.info("Server ready!")
    logger.info(f"Environment: {config.ENVIRONMENT}")
    logger.info(f"API Docs: http://localhost:{config.PORT}/docs")
    logger.info("=" * 60)

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    if config.db:
        config.db.engine.dispose()
        logger.info("Database connections closed")


# Initialize FastAPI app
app = FastAPI(
    title=config.APP_NAME,
    description="Submission, review and publication API for the university magazine",
    version=config.APP_VERSION,
    lifespan=lifespan
)

# Setup middleware (the last added runs first)
app.add_middleware(PageVisitMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuthRequiredMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    requests_per_minute=config.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=config.RATE_LIMIT_PER_HOUR
)
app.add_middleware(RequestLogMiddleware)
setup_cors(
    app,
    config.CORS_ORIGINS,
    allow_credentials=config.CORS_ALLOW_CREDENTIALS,
    expose_headers=config.CORS_EXPOSE_HEADERS
)
if config.ENVIRONMENT == "production":
    setup_trusted_hosts(app, config.TRUSTED_HOSTS)

# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(faculties_router)
app.include_router(submissions_router)
app.include_router(public_router)
app.include_router(admin_router)
app.include_router(manager_router)
app.include_router(coordinator_router)


# ============================================================================
# Exception handlers
# ============================================================================

@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    """Service layer rejections carry their own status code."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Unmatched routes get a descriptive 404; everything else keeps FastAPI's shape."""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return JSONResponse(status_code=exc.status_code, content={"detail": "Endpoint not found"})
    return await http_exception_handler(request, exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    content = {"detail": "Internal server error"}
    if config.ENVIRONMENT == "development":
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# ============================================================================
# Operational endpoints
# ============================================================================

@app.get("/")
async def root():
    """Root endpoint with API information. Public endpoint."""
    return {
        "message": config.APP_NAME,
        "version": config.APP_VERSION,
        "environment": config.ENVIRONMENT,
        "endpoints": {
            "auth": "/api/auth",
            "submissions": "/api/submissions",
            "faculties": "/api/faculties",
            "users": "/api/users",
            "admin": "/api/admin",
            "manager": "/api/manager",
            "coordinator": "/api/coordinator",
            "public": "/api/public",
        },
        "docs": "/docs",
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint. Public endpoint."""
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


@app.get("/api/db-test")
async def db_test():
    """Check the database connection. Public endpoint."""
    if not config.db:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database not initialized")
    try:
        server_time = config.db.ping()
    except SQLAlchemyError as e:
        logger.error(f"Database connection test failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database connection failed"
        )
    return {
        "status": "Database connection successful",
        "time": server_time.isoformat() if hasattr(server_time, "isoformat") else str(server_time),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
