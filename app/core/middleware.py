import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging import request_id_var

logger = logging.getLogger("app.access")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


def install_request_context(app: FastAPI) -> None:
    """
    Tag every request with an id (reusing the caller's X-Request-Id), log one
    access line per request and stamp the security headers on the way out.
    """

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        started = time.perf_counter()

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(f"Request crashed before a response was built: {e}", exc_info=True)
                response = JSONResponse(
                    status_code=500, content={"detail": "Internal Server Error"}
                )

            response.headers["X-Request-Id"] = request_id
            response.headers.update(SECURITY_HEADERS)
            if settings.environment == "production":
                response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"

            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            return response
        finally:
            request_id_var.reset(token)
