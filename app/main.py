import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from app.api.health import router as health_router
from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.exceptions import PersistenceError, ShopError
from app.core.limiter import init_limiter_error_handlers, limiter
from app.core.logging import setup_logging
from app.core.middleware import install_request_context

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
)


# ERROR HANDLERS
@app.exception_handler(ShopError)
async def shop_exception_handler(request: Request, exc: ShopError):
    if isinstance(exc, PersistenceError):
        logger.error(f"Persistence failure on {request.url.path}: {exc.detail}")
    elif exc.status_code in (401, 403):
        logger.warning(f"Access denied on {request.url.path}: {exc.detail}")

    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


# RATE LIMITING
app.state.limiter = limiter
init_limiter_error_handlers(app)


# MIDDLEWARE (last added runs first)
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=[host.strip() for host in settings.allowed_hosts.split(",")],
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
)
install_request_context(app)


# ROUTERS
app.include_router(health_router)
app.include_router(v1_router, prefix="/api/v1")
