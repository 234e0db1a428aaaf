"""Server class for FastAPI applications built from route trees.

This module provides a high-level interface that compiles a declarative route
tree, registers the resulting entries with a FastAPI application and serves it
with uvicorn.

Example:
    ```python
    from routetree import Controller, Server, handler

    class UsersController(Controller):
        @handler
        async def get(self, request, reply):
            return {"id": request.path_params["id"]}

    server = Server(title="Users API")
    server.routes(
        [
            {
                "path": "users",
                "controller": UsersController,
                "children": [{"path": ":id", "handler": "get"}],
            }
        ]
    )

    if __name__ == "__main__":
        server.run()
    ```
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from starlette.responses import Response

from routetree.components.logging_config import LoggingConfigurator
from routetree.config import ServerConfig
from routetree.exceptions import RouteTreeError
from routetree.pipeline.reply import Reply
from routetree.routing.compiler import DispatchEntry, RouteCompiler, RouteSpec
from routetree.routing.context import RouteContext
from routetree.validation import RequestValidator

Plugin = Union[APIRouter, Callable[..., Any], Mapping[str, Any]]


class Server:
    """FastAPI server wrapper driven by a compiled route tree.

    Routes are compiled as soon as they are declared, so configuration errors
    surface before the server starts. They are registered with FastAPI once,
    the first time the app is requested or the server is started.
    """

    def __init__(
        self,
        config: Optional[Union[ServerConfig, Dict[str, Any]]] = None,
        logger: Optional[logging.Logger] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the Server.

        Args:
            config: Server configuration as ServerConfig or dict
            logger: Logger for the route table, errors and lifecycle messages
            **kwargs: Additional configuration parameters
        """
        if config is None:
            config_dict = {}
        elif isinstance(config, ServerConfig):
            config_dict = config.model_dump()
        else:
            config_dict = dict(config)

        config_dict.update(kwargs)
        self.config = ServerConfig(**config_dict)

        self._logger = logger or logging.getLogger(__name__)
        self.compiler = RouteCompiler(logger=self._logger)
        self.app = self._create_app()

        self._entries: List[DispatchEntry] = []
        self._mounted = False
        self._uvicorn_server: Optional[uvicorn.Server] = None
        self._serve_task: Optional["asyncio.Task[None]"] = None

    def _create_app(self) -> FastAPI:
        return FastAPI(
            title=self.config.title,
            description=self.config.description,
            version=self.config.version,
            docs_url=self.config.docs_url,
            redoc_url=self.config.redoc_url,
            debug=self.config.debug,
        )

    @property
    def entries(self) -> Tuple[DispatchEntry, ...]:
        """Compiled dispatch entries, in declaration order."""
        return tuple(self._entries)

    @property
    def is_running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    def connection(
        self, host: Optional[str] = None, port: Optional[int] = None, **options: Any
    ) -> "Server":
        """Set the address the server listens on.

        Args:
            host: Host address
            port: Port number
            **options: Additional uvicorn parameters

        Returns:
            This server, for chaining
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port
        self.config.uvicorn_options.update(options)
        return self

    def routes(
        self, routes: Sequence[RouteSpec], context: Optional[RouteContext] = None
    ) -> List[DispatchEntry]:
        """Compile a route tree into this server's dispatch table.

        Replaces any previously declared table.

        Args:
            routes: Top-level route nodes (``Route`` instances or mappings)
            context: Optional root context to inherit from

        Returns:
            The compiled entries

        Raises:
            ConfigurationError: If the tree is misconfigured
            RouteTreeError: If routes were already registered with the app
        """
        if self._mounted:
            raise RouteTreeError("Routes are already registered with the app")
        self._entries = self.compiler.compile(routes, context)
        return list(self._entries)

    async def register(self, plugins: Union[Plugin, Sequence[Plugin]]) -> Any:
        """Register one plugin or a sequence of plugins with the app.

        A plugin is an ``APIRouter`` (included into the app), a callable
        receiving the app, or a mapping ``{"plugin": ..., "options": {...}}``
        whose options are forwarded to either.

        Returns:
            The plugin's result, or a list of results for a sequence
        """
        if isinstance(plugins, (list, tuple)):
            return [await self._register_plugin(plugin) for plugin in plugins]
        return await self._register_plugin(plugins)

    async def _register_plugin(self, plugin: Plugin) -> Any:
        options: Dict[str, Any] = {}
        if isinstance(plugin, Mapping):
            options = dict(plugin.get("options") or {})
            plugin = plugin["plugin"]

        if isinstance(plugin, APIRouter):
            self.app.include_router(plugin, **options)
            self._logger.debug(f"Included router plugin with {len(plugin.routes)} routes")
            return None

        if callable(plugin):
            result = plugin(self.app, **options)
            if inspect.isawaitable(result):
                result = await result
            self._logger.debug(
                f"Registered plugin {getattr(plugin, '__name__', type(plugin).__name__)}"
            )
            return result

        raise TypeError(f"Unsupported plugin type: {type(plugin).__name__}")

    def mount(self) -> None:
        """Register every compiled entry with the FastAPI app.

        Logs one ``[METHOD] /path`` line per entry. Runs only once.
        """
        if self._mounted:
            return
        for entry in self._entries:
            self._logger.info(f"[{entry.method.upper()}] {entry.path}")
            self._add_entry(entry)
        self._mounted = True

    def _add_entry(self, entry: DispatchEntry) -> None:
        route_options = {k: v for k, v in entry.config.items() if k != "validate"}
        self.app.add_api_route(
            entry.path,
            self._create_endpoint(entry),
            methods=[entry.method.upper()],
            **route_options,
        )

    @staticmethod
    def _create_endpoint(entry: DispatchEntry) -> Callable[[Request], Any]:
        validator = RequestValidator(entry.config.get("validate"), path=entry.path)
        route_handler = entry.handler

        async def endpoint(request: Request) -> Response:
            if not validator.is_empty:
                await validator.validate(request)
            reply = Reply()
            await route_handler(request, reply)
            return reply.to_response()

        endpoint.__name__ = f"{type(entry.controller).__name__}_{route_handler.handler_name}"
        endpoint.__doc__ = route_handler.method.__doc__
        return endpoint

    def get_app(self) -> FastAPI:
        """Get the FastAPI application with all routes registered."""
        self.mount()
        return self.app

    async def start(self) -> None:
        """Register routes and start serving.

        Returns once uvicorn is listening.
        """
        if self.is_running:
            raise RouteTreeError("Server is already running")

        LoggingConfigurator.configure_logging(self.config.log_level)
        app = self.get_app()
        uvicorn_config = uvicorn.Config(
            app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level,
            **self.config.uvicorn_options,
        )
        server = uvicorn.Server(uvicorn_config)
        self._uvicorn_server = server
        self._serve_task = asyncio.create_task(server.serve())

        while not server.started:
            if self._serve_task.done():
                self._serve_task.result()
                raise RouteTreeError("Server stopped before it started listening")
            await asyncio.sleep(0.01)

        self._logger.info(
            f"Server listening at http://{self.config.host}:{self.config.port}"
        )

    async def stop(self) -> None:
        """Stop a server started with ``start()``."""
        if self._uvicorn_server is None or self._serve_task is None:
            return
        self._uvicorn_server.should_exit = True
        await self._serve_task
        self._uvicorn_server = None
        self._serve_task = None
        self._logger.info("Server stopped")

    def run(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        **uvicorn_kwargs: Any,
    ) -> None:
        """Run the server with uvicorn, blocking until it exits.

        Args:
            host: Override host address
            port: Override port number
            **uvicorn_kwargs: Additional uvicorn parameters
        """
        LoggingConfigurator.configure_logging(self.config.log_level)
        self.connection(host=host, port=port, **uvicorn_kwargs)

        app = self.get_app()
        uvicorn.run(
            app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level,
            **self.config.uvicorn_options,
        )


def create_server(
    title: str = "routetree API",
    description: str = "API built from a routetree route tree",
    version: str = "1.0.0",
    **config_kwargs: Any,
) -> Server:
    """Create a Server instance with common configuration.

    Args:
        title: API title
        description: API description
        version: API version
        **config_kwargs: Additional server configuration

    Returns:
        Configured Server instance
    """
    return Server(
        title=title, description=description, version=version, **config_kwargs
    )


__all__ = ["Plugin", "Server", "create_server"]
