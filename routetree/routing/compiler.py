"""Route tree compiler.

Flattens a tree of ``Route`` nodes into an ordered list of ``DispatchEntry``
objects ready to be registered with FastAPI. Path prefixes, controllers and
parameter validation rules declared on a node are inherited by its whole
subtree; guards apply only to the node that declares them.

Example:
    ```python
    entries = compile_routes(
        [
            {
                "controller": UsersController,
                "children": [
                    {
                        "path": "users",
                        "children": [{"path": ":id", "handler": "get"}],
                    }
                ],
            }
        ]
    )
    # entries[0].method == "get", entries[0].path == "/users/{id}"
    ```
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from routetree.exceptions import ConfigurationError
from routetree.pipeline.error_handler import ErrorTranslator
from routetree.pipeline.guards import GuardFn
from routetree.pipeline.handler import RouteHandler

from .context import RouteContext
from .controller import Controller, ControllerFactory
from .route import Route, coerce_route

PARAM_PREFIX = ":"

HTTP_METHODS = frozenset(
    ["get", "post", "put", "patch", "delete", "head", "options", "trace"]
)

RouteSpec = Union[Route, Mapping[str, Any]]


@dataclass(frozen=True)
class DispatchEntry:
    """One flattened route, ready to register with the server.

    Attributes:
        method: Lower-case HTTP method
        path: Full path in ``{name}`` parameter syntax
        config: Route options; ``config["validate"]["params"]`` holds the
            inherited parameter validation rules
        handler: Callable invoked with ``(request, reply)`` per request
    """

    method: str
    path: str
    config: Dict[str, Any]
    handler: RouteHandler

    @property
    def controller(self) -> Controller:
        return self.handler.controller

    @property
    def guards(self) -> Tuple[GuardFn, ...]:
        return self.handler.guards

    @property
    def param_rules(self) -> Dict[str, Any]:
        return self.config["validate"]["params"]


def format_path(path: str) -> str:
    """Normalize a declared path, rewriting ``:name`` segments to ``{name}``.

    Args:
        path: Declared path, one or more ``/``-separated segments

    Returns:
        Segments joined with ``/`` and no surrounding slashes
    """
    segments = []
    for segment in path.strip("/").split("/"):
        if not segment:
            continue
        if segment.startswith(PARAM_PREFIX):
            name = segment[len(PARAM_PREFIX) :]
            if not name:
                raise ConfigurationError(f"Empty parameter name in path '{path}'")
            segment = f"{{{name}}}"
        segments.append(segment)
    return "/".join(segments)


class RouteCompiler:
    """Depth-first compiler from route trees to dispatch entries."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        error_translator: Optional[ErrorTranslator] = None,
    ) -> None:
        """Initialize the compiler.

        Args:
            logger: Logger for compile diagnostics
            error_translator: Translator shared by every compiled handler
        """
        self._logger = logger or logging.getLogger(__name__)
        self._error_translator = error_translator or ErrorTranslator(self._logger)

    def compile(
        self, routes: Sequence[RouteSpec], context: Optional[RouteContext] = None
    ) -> List[DispatchEntry]:
        """Compile ``routes`` under ``context``.

        Entries come out in pre-order: a node's own entry precedes those of
        its children, and siblings keep their declaration order.

        Raises:
            ConfigurationError: If any node is misconfigured; nothing is returned
        """
        if context is None:
            context = RouteContext()
        entries: List[DispatchEntry] = []
        for node in routes:
            entries.extend(self._compile_node(coerce_route(node), context))
        return entries

    def _compile_node(self, route: Route, parent: RouteContext) -> List[DispatchEntry]:
        ctx = parent.fork()

        if route.path is not None:
            ctx = ctx.with_segment(format_path(route.path))

        if route.controller is not None:
            ctx = ctx.with_controller(self.construct_controller(route.controller))

        config = dict(route.config)
        if route.validate is not None:
            validate = dict(route.validate)
            if validate.get("params"):
                ctx = ctx.with_params(validate["params"])
        else:
            validate = dict(config.get("validate") or {})
        validate["params"] = {**(validate.get("params") or {}), **ctx.params}
        config["validate"] = validate

        entries: List[DispatchEntry] = []
        if route.handler is not None:
            entries.append(self._build_entry(route, ctx, config))

        for child in route.children:
            entries.extend(self._compile_node(coerce_route(child), ctx))
        return entries

    def _build_entry(
        self, route: Route, ctx: RouteContext, config: Dict[str, Any]
    ) -> DispatchEntry:
        method = (route.method or "get").lower()
        path = ctx.path or "/"
        if method not in HTTP_METHODS:
            raise ConfigurationError(f"Unsupported HTTP method '{route.method}' for {path}")

        controller = ctx.controller
        if controller is None:
            raise ConfigurationError(
                f"Cannot register route handler '{route.handler}' for "
                f"[{method.upper()}] {path} without an existing controller"
            )
        if not controller.has_handler(route.handler):
            raise ConfigurationError(
                f"{route.handler} does not exist on controller {type(controller).__name__}"
            )

        handler = RouteHandler(
            controller=controller,
            handler_name=route.handler,
            method=controller.get_handler(route.handler),
            guards=route.guards,
            error_translator=self._error_translator,
        )
        self._logger.debug(
            f"Compiled [{method.upper()}] {path} -> "
            f"{type(controller).__name__}.{route.handler}"
        )
        return DispatchEntry(method=method, path=path, config=config, handler=handler)

    def construct_controller(self, factory: ControllerFactory) -> Controller:
        """Create the controller for a node from its factory."""
        controller = factory()
        if not isinstance(controller, Controller):
            raise ConfigurationError(
                f"Controller factory {getattr(factory, '__name__', factory)!r} "
                f"produced {type(controller).__name__}, which is not a Controller"
            )
        return controller


def compile_routes(
    routes: Sequence[RouteSpec],
    context: Optional[RouteContext] = None,
    *,
    logger: Optional[logging.Logger] = None,
) -> List[DispatchEntry]:
    """Compile a route tree with a default ``RouteCompiler``."""
    return RouteCompiler(logger=logger).compile(routes, context)


__all__ = [
    "DispatchEntry",
    "HTTP_METHODS",
    "RouteCompiler",
    "compile_routes",
    "format_path",
]
