"""Controllers and their handler capability table.

A controller is an object exposing named request handlers. Handler methods are
marked with the ``@handler`` decorator and collected into a class-level table
when the subclass is defined, so the route compiler can validate handler names
without probing arbitrary attributes.

Example:
    ```python
    class UsersController(Controller):
        @handler
        async def get(self, request, reply):
            return {"id": request.path_params["id"]}

        @handler(name="list")
        async def list_users(self, request, reply):
            return []
    ```
"""

from typing import Any, Callable, Dict, FrozenSet, Optional, TypeVar, overload

F = TypeVar("F", bound=Callable[..., Any])

_HANDLER_ATTR = "_route_handler_name"


@overload
def handler(func: F) -> F:
    ...


@overload
def handler(*, name: Optional[str] = None) -> Callable[[F], F]:
    ...


def handler(func: Optional[F] = None, *, name: Optional[str] = None) -> Any:
    """Mark a controller method as a routable handler.

    Args:
        func: Method being decorated (when used without arguments)
        name: Handler name used in route declarations (defaults to the method name)

    Returns:
        The method itself, tagged for collection by ``Controller``
    """

    def decorator(method: F) -> F:
        setattr(method, _HANDLER_ATTR, name or method.__name__)
        return method

    if func is not None:
        return decorator(func)
    return decorator


class Controller:
    """Base class for request-handling objects.

    Instances are created once per declaring route node at compile time and
    shared by every request routed to that node's subtree. Controllers must be
    stateless or synchronize their own state.
    """

    __route_handlers__: Dict[str, str] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table: Dict[str, str] = {}
        # Base classes first; a subclass entry replaces an inherited one.
        for klass in reversed(cls.__mro__):
            for attr_name, value in vars(klass).items():
                handler_name = getattr(value, _HANDLER_ATTR, None)
                if handler_name is not None:
                    table[handler_name] = attr_name
        cls.__route_handlers__ = table

    @classmethod
    def handler_names(cls) -> FrozenSet[str]:
        """Names of all handlers this controller exposes."""
        return frozenset(cls.__route_handlers__)

    @classmethod
    def has_handler(cls, name: str) -> bool:
        return name in cls.__route_handlers__

    def get_handler(self, name: str) -> Callable[..., Any]:
        """Return the handler registered under ``name``, bound to this instance.

        Raises:
            KeyError: If the controller exposes no such handler
        """
        return getattr(self, self.__route_handlers__[name])


ControllerFactory = Callable[[], Controller]

__all__ = ["Controller", "ControllerFactory", "handler"]
