"""Logging setup for the application process."""

import logging
from typing import Optional

from billing_bridge.core.config import settings
from billing_bridge.middleware.request_context import RequestIdLogFilter

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestLogHandler(logging.StreamHandler):
    """Stream handler that stamps each record with the current request id."""

    def __init__(self):
        super().__init__()
        self.setFormatter(logging.Formatter(LOG_FORMAT))
        self.addFilter(RequestIdLogFilter())


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Installs one RequestLogHandler so every module logger
    (logging.getLogger(__name__)) inherits the request id. Calling this
    twice replaces the handler instead of duplicating output.

    Args:
        level: Level name, e.g. "INFO" (defaults to settings.LOG_LEVEL)
    """
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())

    for handler in list(root.handlers):
        if isinstance(handler, RequestLogHandler):
            root.removeHandler(handler)

    root.addHandler(RequestLogHandler())
