import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("insider_monitor.http")

QUIET_PATHS = frozenset({"/health"})


def request_log_level(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One ``http_request`` line per request, tagged with the active storage mode."""

    async def dispatch(self, request, call_next):
        start = time.monotonic()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            path = request.url.path
            logger.log(
                request_log_level(path, status_code),
                "http_request method=%s path=%s query=%s status=%s duration_ms=%s storage=%s",
                request.method,
                path,
                request.url.query or "-",
                status_code,
                int((time.monotonic() - start) * 1000),
                getattr(request.app.state, "storage_mode", "unknown"),
            )
