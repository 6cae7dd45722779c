"""
Logging middleware for request/response logging.

Logs HTTP requests with timing and records request metrics. Probe and
scrape endpoints are passed through without a log line.
"""
import time
import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from formhooks.routes.metrics import track_request

logger = structlog.get_logger()

QUIET_PATHS = frozenset({"/health", "/metrics"})


def route_template(request: Request) -> str:
    """Matched route path such as /api/forms/{form_id}/responses, or "unmatched"."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log HTTP requests with timing and context.

    Adds: route, method, duration_ms, status to every log.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        request_logger = logger.bind(route=path, method=request.method)

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            request_logger.error(
                "request_failed",
                status_code=500,
                duration_ms=round(duration * 1000, 2),
                error=str(e)
            )
            track_request(request.method, route_template(request), 500, duration)
            raise

        duration = time.perf_counter() - start_time
        request_logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )
        track_request(request.method, route_template(request), response.status_code, duration)

        return response
