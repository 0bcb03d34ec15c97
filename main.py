from contextlib import asynccontextmanager

from fastapi import FastAPI
from shortlink_app.config import settings
from shortlink_app.cache.factory import CacheFactory
from shortlink_app.database.connection import engine, Base
from shortlink_app.logging_config import setup_logging
from shortlink_app.schemas.url import HealthResponse
from shortlink_app.utils import utcnow
from shortlink_app.api.v1 import urls, redirect

# Import models to ensure they're registered with Base
from shortlink_app.models import ShortUrl

# Create database tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Pick the cache backend once for the whole process"""
    setup_logging(settings.log_level)
    app.state.cache = await CacheFactory.create()
    yield
    await CacheFactory.close()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A URL shortener service built with FastAPI",
    debug=settings.debug,
    lifespan=lifespan,
)

@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint (liveness only, no cache or database access)"""
    return HealthResponse(status="Healthy", service=settings.service_name, timestamp=utcnow())




######## Include routers
app.include_router(urls.router, prefix="/api")
app.include_router(redirect.router)
