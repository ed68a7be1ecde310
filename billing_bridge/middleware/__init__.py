"""
Middleware package.

WHY: Middleware provides cross-cutting concerns, here request ids for log
correlation, that apply to all requests.
"""

from billing_bridge.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContext,
    RequestContextMiddleware,
    RequestIdLogFilter,
    get_client_ip,
    get_request_context,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestContext",
    "RequestContextMiddleware",
    "RequestIdLogFilter",
    "get_client_ip",
    "get_request_context",
]
