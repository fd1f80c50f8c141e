import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shortlink_app.config import settings
from shortlink_app.database.connection import engine, Base
from shortlink_app.api.v1 import shortens, histories, account, redirect
from shortlink_app.cache.factory import CacheBackend, CacheFactory
from shortlink_app.errors import InternalError, InvalidInputError, ShortenerError
from shortlink_app.geoip.factory import GeoIpBackend, GeoIpFactory
from shortlink_app.logging_config import setup_logging
from shortlink_app.services.access_recorder import background_tasks

# Import models to ensure they're registered with Base
from shortlink_app.models import ShortURL, AccessHistory  # noqa: F401

logger = logging.getLogger("shortlink_app.main")

SHUTDOWN_DRAIN_TIMEOUT = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    # Connect optional backends now so no request pays for it
    await CacheFactory.create(CacheBackend(settings.cache_backend))
    await GeoIpFactory.create(GeoIpBackend(settings.geoip_backend))
    logger.info("%s %s starting (%s)", settings.app_name, settings.app_version, settings.environment)
    yield
    # Let in-flight access recording finish before the loop goes away
    await background_tasks.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)
    await CacheFactory.close()
    GeoIpFactory.clear_instance()
    logger.info("%s stopped", settings.app_name)


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A URL shortener service built with FastAPI",
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(ShortenerError)
async def shortener_error_handler(request: Request, exc: ShortenerError):
    message = exc.message
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        message = "Internal server error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"errcode": exc.errcode, "errinfo": message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()))
    return JSONResponse(
        status_code=InvalidInputError.status_code,
        content={
            "errcode": InvalidInputError.errcode,
            "errinfo": f"{field}: {first.get('msg', 'invalid request')}",
        },
    )


@app.get("/ping")
def ping():
    return {"message": "pong"}


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(shortens.router, prefix="/api")
app.include_router(histories.router, prefix="/api")
app.include_router(account.router, prefix="/api")
# Catch-all /{short_code}; keep it last
app.include_router(redirect.router)
