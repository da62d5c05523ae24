"""Request Context Middleware

Tags every request with a correlation ID and writes one access log line
per request (method, path, status, duration).

The ID is taken from an incoming X-Request-ID header when present, otherwise
generated, and always echoed back on the response.
"""

import logging
import time
import uuid
from datetime import datetime

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def generate_correlation_id() -> str:
    """Generate unique correlation ID for request tracing."""
    return f"{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:8]}"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns a correlation ID and logs request timing."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or generate_correlation_id()
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = correlation_id
        log = logger.warning if response.status_code >= 500 else logger.info
        log(f"[{correlation_id}] {request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f}ms)")
        return response
