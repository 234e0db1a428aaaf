"""Exception classes for routetree.

Configuration errors are raised while a route tree is compiled and abort
startup. API exceptions are pre-formed HTTP errors that the request pipeline
passes through to the client unchanged.
"""

from typing import Any, Dict, Optional


class RouteTreeError(Exception):
    """Base class for all routetree errors."""


class ConfigurationError(RouteTreeError):
    """Structural defect in a route tree, detected at compile time."""


class ReplyError(RouteTreeError):
    """Raised when a response is produced twice for the same request."""


class RouteTreeAPIException(RouteTreeError):
    """Pre-formed HTTP error carrying its own status code and body.

    Attributes:
        status_code: HTTP status code sent to the client
        error_code: Machine-readable error identifier
        message: Human-readable error message
        details: Optional extra information included in the body
    """

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Render the response body for this error."""
        body: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(RouteTreeAPIException):
    """404 Not Found."""

    status_code = 404
    error_code = "not_found"


class ForbiddenError(RouteTreeAPIException):
    """403 Forbidden, typically raised by guards."""

    status_code = 403
    error_code = "forbidden"


class UnauthorizedError(RouteTreeAPIException):
    """401 Unauthorized, typically raised by guards."""

    status_code = 401
    error_code = "unauthorized"


__all__ = [
    "RouteTreeError",
    "ConfigurationError",
    "ReplyError",
    "RouteTreeAPIException",
    "NotFoundError",
    "ForbiddenError",
    "UnauthorizedError",
]
