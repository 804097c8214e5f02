import time
import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.conf import settings
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)


def get_correlation_id() -> str:
    """Correlation ID of the request being served ("" outside a request)."""
    return correlation_id_var.get()


class CorrelationIdMiddleware:
    """Tags every request with a correlation ID and logs its outcome.

    Reads the X-Request-ID header, generating a UUID4 when absent.  The
    ID lives in a ContextVar (bound into structlog's context) so every
    log line of the request carries it; it is echoed back in the
    X-Request-ID response header and forwarded to notification tasks.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        token = correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        start = time.monotonic()
        logger.info("http.request_started", method=request.method, path=request.path)
        try:
            response = self.get_response(request)
        finally:
            correlation_id_var.reset(token)

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        slow = duration_ms >= settings.SLOW_REQUEST_MS
        log = logger.warning if slow or response.status_code >= 500 else logger.info
        log(
            "http.request_finished",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            slow=slow,
        )

        response["X-Request-ID"] = cid
        return response
