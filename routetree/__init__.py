"""
routetree - Declarative route trees for FastAPI.

routetree compiles a hierarchical description of HTTP routes into a flat
dispatch table registered with a FastAPI application. Path prefixes, a default
controller and URL-parameter validation rules are declared once on an ancestor
node and inherited by every descendant; guards run only for the leaf that
declares them.

Main Exports:
    Routing:
        - Route: Declarative route tree node
        - Controller: Base class for request-handling objects
        - handler: Decorator exposing a controller method to routes
        - RouteCompiler / compile_routes: Route tree compiler
        - DispatchEntry: One compiled route

    Pipeline:
        - Reply: Per-request response control
        - RequestState: Per-request pipeline state

    Server:
        - Server: FastAPI/uvicorn server wrapper
        - ServerConfig: Server configuration

Example:
    >>> from routetree import Controller, Server, handler
    >>>
    >>> class HealthController(Controller):
    ...     @handler
    ...     async def status(self, request, reply):
    ...         return {"status": "ok"}
    >>>
    >>> server = Server(title="My API")
    >>> server.routes([{"path": "health", "controller": HealthController, "handler": "status"}])
"""

__version__ = "0.1.0"

from . import exceptions
from .config import ServerConfig
from .exceptions import (
    ConfigurationError,
    ForbiddenError,
    NotFoundError,
    ReplyError,
    RouteTreeAPIException,
    RouteTreeError,
    UnauthorizedError,
)
from .pipeline import Reply, RequestState
from .routing import (
    Controller,
    DispatchEntry,
    Route,
    RouteCompiler,
    RouteContext,
    compile_routes,
    handler,
)
from .server import Server, create_server

__all__ = [
    "__version__",
    "exceptions",
    # Routing
    "Controller",
    "DispatchEntry",
    "Route",
    "RouteCompiler",
    "RouteContext",
    "compile_routes",
    "handler",
    # Pipeline
    "Reply",
    "RequestState",
    # Server
    "Server",
    "ServerConfig",
    "create_server",
    # Errors
    "ConfigurationError",
    "ForbiddenError",
    "NotFoundError",
    "ReplyError",
    "RouteTreeAPIException",
    "RouteTreeError",
    "UnauthorizedError",
]
