"""Per-request response control.

Every compiled route handler receives a ``Reply`` alongside the request.
Guards and controller handlers may produce the response directly through it;
otherwise the dispatcher or the error translator does. The reply also carries
the request's position in the pipeline state machine::

    PENDING -> GUARDS_RUNNING -> {SHORT_CIRCUITED | GUARDS_PASSED}
    GUARDS_PASSED -> HANDLER_RUNNING -> {REPLIED | ERROR}
    {SHORT_CIRCUITED | REPLIED | ERROR} -> RESPONSE_SENT
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.responses import Response

from routetree.exceptions import ReplyError


class RequestState(str, Enum):
    """Position of a request in the guard/handler pipeline."""

    PENDING = "pending"
    GUARDS_RUNNING = "guards_running"
    SHORT_CIRCUITED = "short_circuited"
    GUARDS_PASSED = "guards_passed"
    HANDLER_RUNNING = "handler_running"
    REPLIED = "replied"
    ERROR = "error"
    RESPONSE_SENT = "response_sent"


_TRANSITIONS: Dict[RequestState, FrozenSet[RequestState]] = {
    RequestState.PENDING: frozenset([RequestState.GUARDS_RUNNING]),
    RequestState.GUARDS_RUNNING: frozenset(
        [
            RequestState.SHORT_CIRCUITED,
            RequestState.GUARDS_PASSED,
            RequestState.ERROR,
        ]
    ),
    RequestState.GUARDS_PASSED: frozenset([RequestState.HANDLER_RUNNING]),
    RequestState.HANDLER_RUNNING: frozenset(
        [RequestState.REPLIED, RequestState.ERROR]
    ),
    RequestState.SHORT_CIRCUITED: frozenset([RequestState.RESPONSE_SENT]),
    RequestState.REPLIED: frozenset([RequestState.RESPONSE_SENT]),
    RequestState.ERROR: frozenset([RequestState.RESPONSE_SENT]),
    RequestState.RESPONSE_SENT: frozenset(),
}


class Reply:
    """Response-control object handed to guards and handlers.

    At most one response may be produced per request; a second attempt raises
    ``ReplyError``.
    """

    def __init__(self, state: RequestState = RequestState.PENDING) -> None:
        self.state = state
        self.response: Optional[Response] = None

    @property
    def replied(self) -> bool:
        """Whether a response has already been produced."""
        return self.response is not None

    def transition(self, state: RequestState) -> None:
        """Move to ``state``, rejecting moves the pipeline never makes."""
        if state not in _TRANSITIONS[self.state]:
            raise ReplyError(
                f"Illegal request state transition: {self.state.value} -> {state.value}"
            )
        self.state = state

    def respond(self, response: Response) -> Response:
        """Produce ``response`` as the reply to this request."""
        if self.replied:
            raise ReplyError("A response has already been sent for this request")
        self.response = response
        return response

    def send(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Response:
        """Reply with ``content`` serialized as JSON.

        Starlette ``Response`` objects are sent as they are.

        Args:
            content: Response body
            status_code: HTTP status code
            headers: Optional extra response headers
        """
        if isinstance(content, Response):
            return self.respond(content)
        return self.respond(
            JSONResponse(
                content=jsonable_encoder(content),
                status_code=status_code,
                headers=dict(headers) if headers else None,
            )
        )

    def empty(
        self, status_code: int = 204, headers: Optional[Mapping[str, str]] = None
    ) -> Response:
        """Reply with no body."""
        return self.respond(
            Response(status_code=status_code, headers=dict(headers) if headers else None)
        )

    def to_response(self) -> Response:
        """Hand the produced response to the server, ending the request."""
        if self.response is None:
            raise ReplyError("No response was produced for this request")
        self.transition(RequestState.RESPONSE_SENT)
        return self.response


__all__ = ["Reply", "RequestState"]
