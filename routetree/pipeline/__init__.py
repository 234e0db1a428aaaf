"""Request pipeline run by every compiled route.

A request passes through the route's guards, then its controller handler;
any failure along the way is translated into a response.
"""

from .dispatcher import dispatch
from .error_handler import ErrorTranslator
from .guards import GuardFn, run_guards
from .handler import RouteHandler
from .reply import Reply, RequestState

__all__ = [
    "ErrorTranslator",
    "GuardFn",
    "Reply",
    "RequestState",
    "RouteHandler",
    "dispatch",
    "run_guards",
]
