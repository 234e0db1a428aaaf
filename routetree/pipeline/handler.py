"""Compiled per-route request handler."""

from typing import Any, Callable, Optional, Sequence, Tuple

from .dispatcher import dispatch
from .error_handler import ErrorTranslator
from .guards import GuardFn, run_guards
from .reply import Reply


class RouteHandler:
    """Guards, then controller handler, with failures translated to responses.

    One instance is built per leaf route at compile time and serves every
    request to that route.

    Attributes:
        controller: Controller instance the handler is bound to
        handler_name: Name the handler was declared under
        method: Bound controller handler
        guards: The leaf's own guards, in order
    """

    def __init__(
        self,
        controller: Any,
        handler_name: str,
        method: Callable[..., Any],
        guards: Sequence[GuardFn] = (),
        error_translator: Optional[ErrorTranslator] = None,
    ) -> None:
        self.controller = controller
        self.handler_name = handler_name
        self.method = method
        self.guards: Tuple[GuardFn, ...] = tuple(guards)
        self.error_translator = error_translator or ErrorTranslator()

    async def __call__(self, request: Any, reply: Reply) -> None:
        try:
            if await run_guards(self.guards, request, reply):
                return
            await dispatch(self.method, request, reply)
        except Exception as exc:
            await self.error_translator.translate(exc, request, reply)

    def __repr__(self) -> str:
        return (
            f"RouteHandler({type(self.controller).__name__}.{self.handler_name}, "
            f"guards={len(self.guards)})"
        )


__all__ = ["RouteHandler"]
