"""Test suite for the Server class."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.testclient import TestClient

from routetree import (
    ConfigurationError,
    Controller,
    RouteTreeError,
    Server,
    ServerConfig,
    UnauthorizedError,
    create_server,
    handler,
)

LOGGER_NAME = "tests.server"


class UsersController(Controller):
    def __init__(self):
        self.calls = []

    @handler
    async def index(self, request, reply):
        self.calls.append("index")
        return [{"id": "1"}, {"id": "2"}]

    @handler
    async def get(self, request, reply):
        self.calls.append("get")
        return {"id": request.path_params["id"]}

    @handler
    async def create(self, request, reply):
        reply.send({"created": True}, status_code=201)

    @handler
    async def remove(self, request, reply):
        return None

    @handler
    async def missing(self, request, reply):
        raise HTTPException(status_code=404, detail="User not found")

    @handler
    async def explode(self, request, reply):
        raise RuntimeError("database exploded")


async def require_token(request, reply):
    if request.headers.get("authorization") != "Bearer secret":
        reply.send({"message": "Unauthorized"}, status_code=401)


async def require_admin(request, reply):
    raise UnauthorizedError("Admin token required")


def _user_routes():
    return [
        {
            "path": "users",
            "controller": UsersController,
            "children": [
                {"handler": "index"},
                {"method": "post", "handler": "create"},
                {"path": "boom", "handler": "explode"},
                {"path": "ghost", "handler": "missing"},
                {"path": "private", "handler": "index", "guards": [require_token]},
                {"path": "admin", "handler": "index", "guards": [require_admin]},
                {
                    "path": ":id",
                    "children": [
                        {"handler": "get"},
                        {"method": "delete", "handler": "remove"},
                    ],
                },
            ],
        }
    ]


@pytest.fixture
def server():
    server = Server(logger=logging.getLogger(LOGGER_NAME))
    server.routes(_user_routes())
    return server


@pytest.fixture
def routetree_logger():
    logger = logging.getLogger("routetree")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    logger.handlers = []
    yield logger
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


@pytest.fixture
def client(server):
    return TestClient(server.get_app())


class TestServerInitialization:
    """Test server construction and configuration."""

    def test_default_config(self):
        server = Server()

        assert isinstance(server.config, ServerConfig)
        assert server.config.port == 8000
        assert isinstance(server.app, FastAPI)
        assert server.entries == ()

    def test_config_from_dict_and_kwargs(self):
        server = Server({"title": "Users API", "port": 9000}, debug=True)

        assert server.config.title == "Users API"
        assert server.config.port == 9000
        assert server.config.debug is True
        assert server.app.title == "Users API"

    def test_config_object(self):
        server = Server(ServerConfig(title="From model"), version="2.0.0")

        assert server.app.title == "From model"
        assert server.app.version == "2.0.0"

    def test_connection_updates_address(self):
        server = Server()

        result = server.connection("127.0.0.1", 8081, workers=2)

        assert result is server
        assert server.config.host == "127.0.0.1"
        assert server.config.port == 8081
        assert server.config.uvicorn_options == {"workers": 2}

    def test_create_server(self):
        server = create_server(title="Factory API", port=7000)

        assert server.config.title == "Factory API"
        assert server.config.port == 7000


class TestRequests:
    """Test requests routed through compiled entries."""

    def test_list(self, client):
        response = client.get("/users")

        assert response.status_code == 200
        assert response.json() == [{"id": "1"}, {"id": "2"}]

    def test_path_parameter(self, client):
        response = client.get("/users/42")

        assert response.status_code == 200
        assert response.json() == {"id": "42"}

    def test_handler_reply(self, client):
        response = client.post("/users")

        assert response.status_code == 201
        assert response.json() == {"created": True}

    def test_none_result_is_no_content(self, client):
        response = client.delete("/users/42")

        assert response.status_code == 204
        assert response.content == b""

    def test_unknown_method_is_rejected(self, client):
        response = client.put("/users/42")

        assert response.status_code == 405

    def test_controller_shared_by_subtree(self, server):
        controllers = {id(entry.controller) for entry in server.entries}

        assert len(controllers) == 1


class TestErrors:
    """Test failures translated into responses."""

    def test_http_exception_passes_through(self, client):
        response = client.get("/users/ghost")

        assert response.status_code == 404
        assert response.json() == {"detail": "User not found"}

    def test_unexpected_error_is_internal_error(self, client):
        response = client.get("/users/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error_code"] == "internal_error"
        assert body["message"] == "database exploded"
        assert "Traceback" in body["detail"]

    def test_unexpected_error_logged_once(self, client, caplog):
        with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
            client.get("/users/boom")

        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert errors[0].name == LOGGER_NAME
        assert "database exploded" in errors[0].getMessage()


class TestGuards:
    """Test guards on mounted routes."""

    def test_guard_short_circuit(self, server, client):
        response = client.get("/users/private")

        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}
        assert server.entries[0].controller.calls == []

    def test_guard_allows_request(self, client):
        response = client.get(
            "/users/private", headers={"Authorization": "Bearer secret"}
        )

        assert response.status_code == 200

    def test_guard_raising_api_exception(self, client):
        response = client.get("/users/admin")

        assert response.status_code == 401
        assert response.json() == {
            "error_code": "unauthorized",
            "message": "Admin token required",
        }


class TestRouteRegistration:
    """Test compiling and mounting the route table."""

    def test_entries_in_declaration_order(self, server):
        assert [(e.method, e.path) for e in server.entries] == [
            ("get", "/users"),
            ("post", "/users"),
            ("get", "/users/boom"),
            ("get", "/users/ghost"),
            ("get", "/users/private"),
            ("get", "/users/admin"),
            ("get", "/users/{id}"),
            ("delete", "/users/{id}"),
        ]

    def test_configuration_error_before_start(self):
        server = Server()

        with pytest.raises(ConfigurationError, match="does not exist"):
            server.routes(
                [{"path": "users", "controller": UsersController, "handler": "nope"}]
            )
        assert server.entries == ()

    def test_routes_after_mount_rejected(self, server):
        server.get_app()

        with pytest.raises(RouteTreeError, match="already registered"):
            server.routes(_user_routes())

    def test_routes_replaces_table(self, server):
        server.routes(
            [{"path": "health", "controller": UsersController, "handler": "index"}]
        )

        assert [e.path for e in server.entries] == ["/health"]

    def test_mount_logs_route_table_once(self, server, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            server.get_app()
            server.get_app()

        lines = [r.getMessage() for r in caplog.records if r.name == LOGGER_NAME]
        assert lines.count("[GET] /users/{id}") == 1
        assert lines.count("[DELETE] /users/{id}") == 1
        assert "[POST] /users" in lines

    def test_route_options_forwarded(self):
        server = Server()
        server.routes(
            [
                {
                    "path": "users",
                    "controller": UsersController,
                    "handler": "index",
                    "config": {"tags": ["users"], "summary": "List users"},
                }
            ]
        )

        schema = TestClient(server.get_app()).get("/openapi.json").json()

        operation = schema["paths"]["/users"]["get"]
        assert operation["tags"] == ["users"]
        assert operation["summary"] == "List users"


class TestPlugins:
    """Test plugin registration."""

    @pytest.mark.asyncio
    async def test_register_router(self):
        server = Server()
        router = APIRouter()

        @router.get("/ping")
        async def ping():
            return {"pong": True}

        result = await server.register(router)

        assert result is None
        assert TestClient(server.get_app()).get("/ping").json() == {"pong": True}

    @pytest.mark.asyncio
    async def test_register_router_with_options(self):
        server = Server()
        router = APIRouter()

        @router.get("/ping")
        async def ping():
            return {"pong": True}

        await server.register({"plugin": router, "options": {"prefix": "/v1"}})

        assert TestClient(server.get_app()).get("/v1/ping").status_code == 200

    @pytest.mark.asyncio
    async def test_register_callable(self):
        server = Server()
        plugin = MagicMock(return_value="registered")

        result = await server.register({"plugin": plugin, "options": {"debug": 1}})

        assert result == "registered"
        plugin.assert_called_once_with(server.app, debug=1)

    @pytest.mark.asyncio
    async def test_register_async_callable(self):
        server = Server()
        plugin = AsyncMock(return_value="done")

        result = await server.register(plugin)

        assert result == "done"
        plugin.assert_awaited_once_with(server.app)

    @pytest.mark.asyncio
    async def test_register_sequence(self):
        server = Server()
        first = MagicMock(return_value=1)
        second = AsyncMock(return_value=2)

        results = await server.register([first, second])

        assert results == [1, 2]

    @pytest.mark.asyncio
    async def test_register_unsupported_plugin(self):
        server = Server()

        with pytest.raises(TypeError, match="Unsupported plugin type"):
            await server.register(42)


class FakeUvicornServer:
    """Stand-in for ``uvicorn.Server`` that starts instantly."""

    def __init__(self, config):
        self.config = config
        self.started = False
        self.should_exit = False

    async def serve(self):
        self.started = True
        while not self.should_exit:
            await asyncio.sleep(0.001)


class TestLifecycle:
    """Test start and stop."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, server, caplog):
        with patch("routetree.server.uvicorn.Config") as config_cls, patch(
            "routetree.server.uvicorn.Server", FakeUvicornServer
        ), patch("routetree.server.LoggingConfigurator"), caplog.at_level(
            logging.INFO, logger=LOGGER_NAME
        ):
            server.connection("127.0.0.1", 8123)
            await server.start()

            assert server.is_running
            config_cls.assert_called_once()
            assert config_cls.call_args.kwargs["host"] == "127.0.0.1"
            assert config_cls.call_args.kwargs["port"] == 8123

            await server.stop()

        assert not server.is_running
        messages = [r.getMessage() for r in caplog.records]
        assert "Server listening at http://127.0.0.1:8123" in messages
        assert "[GET] /users" in messages

    @pytest.mark.asyncio
    async def test_start_twice_rejected(self, server):
        with patch("routetree.server.uvicorn.Config"), patch(
            "routetree.server.uvicorn.Server", FakeUvicornServer
        ), patch("routetree.server.LoggingConfigurator"):
            await server.start()
            try:
                with pytest.raises(RouteTreeError, match="already running"):
                    await server.start()
            finally:
                await server.stop()

    @pytest.mark.asyncio
    async def test_start_prints_route_table(self, routetree_logger, capsys):
        server = Server(log_level="info")
        server.routes(_user_routes())

        with patch("routetree.server.uvicorn.Config"), patch(
            "routetree.server.uvicorn.Server", FakeUvicornServer
        ):
            await server.start()
            await server.stop()

        err = capsys.readouterr().err
        assert err.count("routetree.server - INFO - [GET] /users\n") == 1
        assert "[DELETE] /users/{id}" in err
        assert "Server listening at http://0.0.0.0:8000" in err

    @pytest.mark.asyncio
    async def test_stop_without_start(self, server):
        await server.stop()

        assert not server.is_running

    def test_run_uses_uvicorn(self, server):
        with patch("routetree.server.uvicorn.run") as run, patch(
            "routetree.server.LoggingConfigurator"
        ) as configurator:
            server.run(host="127.0.0.1", port=8124)

        configurator.configure_logging.assert_called_once_with("info")
        run.assert_called_once()
        args, kwargs = run.call_args
        assert args[0] is server.app
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 8124
