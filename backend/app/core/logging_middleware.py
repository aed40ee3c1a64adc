"""Request logging middleware."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("fmcsr.requests")

# Error bodies longer than this are truncated in the log
MAX_LOGGED_BODY = 500

# Scheduler hits these on a timer; only failures are worth a line
QUIET_PATH_PREFIXES = ("/health",)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status, and duration.

    For 4xx/5xx responses the body is logged too, so the ``detail`` of an
    HTTPException (a missing section, an eCFR outage) shows up next to the
    request that caused it.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000

        status = response.status_code
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"

        if status < 400:
            if not request.url.path.startswith(QUIET_PATH_PREFIXES):
                logger.info("%s %s -> %d (%.0fms)", request.method, path, status, duration_ms)
            return response

        if not hasattr(response, "body_iterator"):
            logger.warning("%s %s -> %d (%.0fms)", request.method, path, status, duration_ms)
            return response

        # Consume the streamed body for the log, then hand the client a copy.
        body_bytes = b""
        async for chunk in response.body_iterator:
            body_bytes += chunk.encode("utf-8") if isinstance(chunk, str) else chunk

        detail = body_bytes.decode("utf-8", errors="replace")
        if len(detail) > MAX_LOGGED_BODY:
            detail = detail[:MAX_LOGGED_BODY] + "..."

        log = logger.warning if status < 500 else logger.error
        log("%s %s -> %d (%.0fms): %s", request.method, path, status, duration_ms, detail)

        return Response(
            content=body_bytes,
            status_code=status,
            headers=dict(response.headers),
            media_type=response.media_type,
        )
