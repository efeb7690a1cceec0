"""
CreativeHub Backend - Main FastAPI Application
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.middleware.sessions import SessionMiddleware
import logging
import sys

from creativehub.core.config import settings
from creativehub.core.database import connect_db, disconnect_db
from creativehub.core.errors import UpstreamFetchError
from creativehub.core.google_clients import init_google_services
from creativehub.core.redis_client import connect_redis, disconnect_redis

from creativehub.api import auth, assets, taxonomy, users

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    logger.info("Starting CreativeHub backend application...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    try:
        logger.info("Initializing database connection...")
        await connect_db()

        logger.info("Initializing Redis connection...")
        await connect_redis()

        logger.info("Initializing Google clients...")
        init_google_services()

        logger.info("All services initialized successfully")

        yield

        logger.info("Shutting down application...")
        await disconnect_db()
        await disconnect_redis()
        logger.info("Shutdown complete")
    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        raise


app = FastAPI(
    title="CreativeHub API",
    description="Digital asset management backed by Google Drive",
    version="1.0.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/api/redoc" if settings.ENVIRONMENT == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Frontend and API live on different sites in production
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    session_cookie=settings.SESSION_COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE_SECONDS,
    same_site="none" if settings.ENVIRONMENT == "production" else "lax",
    https_only=settings.ENVIRONMENT == "production",
)


@app.exception_handler(UpstreamFetchError)
async def upstream_fetch_error_handler(request: Request, exc: UpstreamFetchError):
    logger.error(f"Upstream fetch failed on {request.method} {request.url.path}: {exc}")
    return ORJSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Upstream service unavailable"},
    )


app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(assets.router, prefix="/api/assets", tags=["Assets"])
app.include_router(taxonomy.router, prefix="/api/taxonomy", tags=["Taxonomy"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }
