"""Pre-handler guard execution."""

import inspect
from typing import Any, Awaitable, Callable, Sequence, Union

from .reply import Reply, RequestState

GuardFn = Callable[[Any, Reply], Union[Awaitable[None], None]]
"""Guard signature: ``guard(request, reply)``, sync or async."""


async def run_guards(guards: Sequence[GuardFn], request: Any, reply: Reply) -> bool:
    """Run a leaf's guards in declaration order.

    Each guard is called with ``(request, reply)`` and awaited when it returns
    an awaitable. A guard rejects the request either by replying directly,
    which stops the pipeline, or by raising, which propagates to the caller.

    Args:
        guards: Guards declared on the leaf route
        request: Incoming request
        reply: Response control for this request

    Returns:
        True if a guard replied and the handler must not run
    """
    reply.transition(RequestState.GUARDS_RUNNING)
    for guard in guards:
        result = guard(request, reply)
        if inspect.isawaitable(result):
            await result
        if reply.replied:
            reply.transition(RequestState.SHORT_CIRCUITED)
            return True
    reply.transition(RequestState.GUARDS_PASSED)
    return False


__all__ = ["GuardFn", "run_guards"]
