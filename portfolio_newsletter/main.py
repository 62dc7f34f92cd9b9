# portfolio_newsletter/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Dict, List, Optional
from portfolio_newsletter.config import Settings, get_settings
from portfolio_newsletter.middleware.cors import setup_cors
from portfolio_newsletter.database.connection import DatabaseConnection
from portfolio_newsletter.database.schema import ensure_newsletter_schema
from portfolio_newsletter.newsletter.service import NewsletterService
from portfolio_newsletter.newsletter.signing import UrlSigner
from portfolio_newsletter.services.email_service import EmailService
from portfolio_newsletter.routes.newsletter import router as newsletter_router
from portfolio_newsletter.routes.admin_newsletter import router as admin_newsletter_router

import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings: Settings = app.state.settings

    # Startup
    logger.info("Starting portfolio newsletter API...")
    DatabaseConnection.configure(settings.database_url)
    try:
        pool = await DatabaseConnection.get_pool()
        logger.info("Database connection pool initialized")
        if settings.auto_create_schema:
            async with pool.acquire() as conn:
                await ensure_newsletter_schema(conn)
    except Exception as e:
        if settings.environment == "development":
            logger.warning(f"Database connection failed (development mode): {e}")
        else:
            logger.error(f"Failed to initialize database: {e}")
            raise

    yield

    # Shutdown
    logger.info("Shutting down portfolio newsletter API...")
    try:
        await DatabaseConnection.close_pool()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning(f"Error closing database connections: {e}")

def _field_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "request"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors

def create_app(
    settings: Optional[Settings] = None,
    email_service: Optional[EmailService] = None
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Portfolio Newsletter API",
        description="Newsletter subscriptions with signed confirmation and unsubscribe links",
        version="1.0.0",
        lifespan=lifespan
    )

    signer = UrlSigner(settings.app_secret_key, settings.backend_url)
    app.state.settings = settings
    app.state.newsletter_service = NewsletterService(settings, signer)
    app.state.email_service = email_service or EmailService(settings)

    # Setup CORS
    setup_cors(app, settings)

    app.include_router(newsletter_router)
    app.include_router(admin_newsletter_router)

    @app.get("/")
    async def root():
        return {"message": "Portfolio Newsletter API", "status": "healthy"}

    @app.get("/health")
    async def health_check():
        """Health check including database"""
        try:
            pool = await DatabaseConnection.get_pool()
            async with pool.acquire() as conn:
                await conn.fetchval('SELECT 1')
            db_healthy = True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            db_healthy = False

        return {
            "status": "healthy" if db_healthy else "degraded",
            "environment": settings.environment,
            "database_healthy": db_healthy
        }

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Validation failed",
                "errors": _field_errors(exc)
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail, "detail": exc.detail},
            headers=getattr(exc, "headers", None)
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    return app

app = create_app()
