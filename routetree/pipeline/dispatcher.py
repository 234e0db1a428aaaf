"""Controller handler invocation."""

import inspect
from typing import Any, Callable

from .reply import Reply, RequestState


async def dispatch(method: Callable[..., Any], request: Any, reply: Reply) -> None:
    """Invoke a bound controller handler and reply with its result.

    A handler that replied directly is left alone. Otherwise a ``None``
    result becomes an empty 204 response and any other value is sent as the
    body with status 200.

    Args:
        method: Controller handler, already bound to its controller
        request: Incoming request
        reply: Response control for this request
    """
    reply.transition(RequestState.HANDLER_RUNNING)
    result = method(request, reply)
    if inspect.isawaitable(result):
        result = await result

    if not reply.replied:
        if result is None:
            reply.empty(204)
        else:
            reply.send(result)

    reply.transition(RequestState.REPLIED)


__all__ = ["dispatch"]
