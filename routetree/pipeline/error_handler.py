"""Translation of guard and handler failures into responses.

Errors raised while a request runs through its guards or its controller
handler never escape the pipeline. They become exactly one response:

- if a response was already produced, the error is dropped;
- pre-formed HTTP errors (``HTTPException``, ``RouteTreeAPIException``) keep
  their own status and body, logged at DEBUG for 4xx and ERROR for 5xx;
- anything else is logged and answered with a 500 carrying the message and
  traceback.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from routetree.exceptions import RouteTreeAPIException

from .reply import Reply, RequestState


class ErrorTranslator:
    """Converts pipeline failures into a single response instruction."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        """Initialize the translator.

        Args:
            logger: Logger for unexpected errors (defaults to this module's logger)
        """
        self._logger = logger or logging.getLogger(__name__)

    @staticmethod
    def is_recognized(exc: BaseException) -> bool:
        """Whether ``exc`` already describes a complete HTTP response."""
        return isinstance(exc, (StarletteHTTPException, RouteTreeAPIException))

    async def translate(self, exc: Exception, request: Any, reply: Reply) -> None:
        """Reply to ``request`` on behalf of the failure ``exc``.

        Args:
            exc: Exception raised by a guard or a handler
            request: Request being served
            reply: Response control for this request
        """
        if reply.replied:
            self._logger.debug(
                f"Ignoring {type(exc).__name__} raised after the response was sent: {exc}"
            )
            if reply.state is RequestState.GUARDS_RUNNING:
                reply.transition(RequestState.SHORT_CIRCUITED)
            else:
                reply.transition(RequestState.REPLIED)
            return

        reply.transition(RequestState.ERROR)

        if self.is_recognized(exc):
            self._log_http_error(exc, request)
            if isinstance(exc, RouteTreeAPIException):
                reply.respond(
                    JSONResponse(status_code=exc.status_code, content=exc.to_dict())
                )
            else:
                reply.respond(await http_exception_handler(request, exc))
            return

        self._logger.error(
            f"Unexpected error: {type(exc).__name__}: {exc}",
            exc_info=exc,
            extra={
                "error_type": type(exc).__name__,
                "path": _request_path(request),
                "method": getattr(request, "method", None),
            },
        )
        reply.send(self.internal_error_body(exc), status_code=500)

    def _log_http_error(self, exc: Exception, request: Any) -> None:
        status_code = getattr(exc, "status_code", 500)
        extra = {
            "error_type": type(exc).__name__,
            "status_code": status_code,
            "path": _request_path(request),
            "method": getattr(request, "method", None),
        }
        description = getattr(exc, "message", None) or getattr(exc, "detail", None) or exc
        message = f"HTTP error {status_code}: {description}"
        if status_code >= 500:
            self._logger.error(message, exc_info=exc, extra=extra)
        else:
            # Client errors (4xx)
            self._logger.debug(message, exc_info=exc, extra=extra)

    @staticmethod
    def internal_error_body(exc: BaseException) -> Dict[str, Any]:
        """Build the 500 response body for an unexpected error."""
        return {
            "error_code": "internal_error",
            "message": str(exc) or type(exc).__name__,
            "detail": "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
        }


def _request_path(request: Any) -> Optional[str]:
    url = getattr(request, "url", None)
    path = getattr(url, "path", None)
    return str(path) if path is not None else None


__all__ = ["ErrorTranslator"]
