"""
Request context middleware for log correlation.

WHAT: Assigns every request an id, keeps it (with the client address and
route) in a ContextVar for the lifetime of the request, and echoes it back
in the X-Request-ID response header.

WHY: One checkout or webhook delivery produces several log lines across the
route, services and storage layer. Stamping all of them with the same
request id lets an operator follow a single delivery through the logs, and
lets a caller quote the id from the response header.

HOW: The ContextVar is async-safe, so services log without being handed the
request. RequestIdLogFilter copies the id onto every LogRecord.
"""

import logging
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class RequestContext:
    """Request-scoped values available to logging."""

    request_id: str
    ip_address: str
    path: str
    method: str


_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """Current request context, or None outside a request."""
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Client address, preferring proxy headers.

    X-Forwarded-For is only trustworthy behind a proxy that overwrites it;
    the value is used for logs only.
    """
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RequestIdLogFilter(logging.Filter):
    """Adds `request_id` to every log record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _request_context.get()
        record.request_id = context.request_id if context else "-"
        return True


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Capture request context and tag the response with its request id.

    An incoming X-Request-ID is reused so ids stay stable across a proxy
    that already assigns them.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        context = RequestContext(
            request_id=request_id,
            ip_address=get_client_ip(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context
        token = _request_context.set(context)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            _request_context.reset(token)
