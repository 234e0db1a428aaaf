"""Logging configuration for routetree servers.

Route handlers translate every failure into a response themselves and log it
through ``routetree.pipeline.error_handler``: unexpected errors and 5xx HTTP
errors at ERROR with a traceback, 4xx HTTP errors at DEBUG. This module sets
up the formatter for those logs, which omits the traceback of 4xx errors, and
for the route table printed at startup.
"""

import logging
from typing import Optional, Union

from starlette.exceptions import HTTPException as StarletteHTTPException

from routetree.exceptions import RouteTreeAPIException

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _is_client_error(exc_value: Optional[BaseException]) -> bool:
    """Check if an exception is a known client error (4xx)."""
    if isinstance(exc_value, (StarletteHTTPException, RouteTreeAPIException)):
        return exc_value.status_code < 500
    return False


class KnownErrorFormatter(logging.Formatter):
    """Formatter that suppresses stack traces for client errors."""

    def formatException(self, ei):  # noqa: N802
        """Return an empty traceback for client errors.

        Args:
            ei: Exception info tuple

        Returns:
            Empty string for client errors, full traceback otherwise
        """
        if not ei:
            return ""

        if _is_client_error(ei[1]):
            return ""
        return super().formatException(ei)


class LoggingConfigurator:
    """Installs the routetree log format on the ``routetree`` logger."""

    @staticmethod
    def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
        """Configure the ``routetree`` logger hierarchy.

        Safe to call repeatedly; the handler is only installed once.

        Args:
            level: Log level name or number

        Returns:
            The configured ``routetree`` logger
        """
        if isinstance(level, str):
            level = getattr(logging, level.upper(), logging.INFO)

        logger = logging.getLogger("routetree")
        logger.setLevel(level)

        formatter = KnownErrorFormatter(LOG_FORMAT)
        existing = [
            h for h in logger.handlers if isinstance(h.formatter, KnownErrorFormatter)
        ]
        if existing:
            for log_handler in existing:
                log_handler.setFormatter(formatter)
        else:
            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(formatter)
            logger.addHandler(stream_handler)
        return logger


__all__ = ["KnownErrorFormatter", "LoggingConfigurator", "LOG_FORMAT"]
