"""Request logging middleware.

One ``request_completed`` event per API request. The request id and the
caller's user and role ids are bound to structlog's context by
``RequestIdMiddleware`` and ``IdentityContextMiddleware``, so they appear on
this event (and on every service log line) without being repeated here.
"""

import time
from typing import Any

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from shipdesk.config import settings


logger = structlog.get_logger()

# Health checks and API docs
QUIET_PATH_PREFIXES = ("/health/", "/docs", "/redoc", "/openapi.json")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every API request.

    5xx responses log at error, 4xx at warning. Successful responses slower
    than ``settings.slow_request_ms`` are logged as ``slow_request`` warnings.
    Request bodies are never logged; login and user payloads carry passwords.
    """

    def __init__(
        self,
        app: Any,
        quiet_paths: tuple[str, ...] = QUIET_PATH_PREFIXES,
        slow_request_ms: int | None = None,
    ) -> None:
        super().__init__(app)
        self.quiet_paths = quiet_paths
        self.slow_request_ms = (
            settings.slow_request_ms if slow_request_ms is None else slow_request_ms
        )

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path.startswith(self.quiet_paths):
            return await call_next(request)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=_elapsed_ms(start),
            )
            raise

        event: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": _elapsed_ms(start),
            "client_ip": get_client_ip(request),
        }

        if response.status_code >= 500:
            logger.error("request_completed", **event)
        elif response.status_code >= 400:
            logger.warning("request_completed", **event)
        elif event["duration_ms"] >= self.slow_request_ms:
            logger.warning("slow_request", **event)
        else:
            logger.info("request_completed", **event)

        return response


def get_client_ip(request: Request) -> str | None:
    """The original client address, honouring the first X-Forwarded-For hop.

    Also recorded on refresh tokens issued at login.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
