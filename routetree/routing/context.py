"""Inherited state threaded through route tree compilation."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from .controller import Controller


@dataclass(frozen=True)
class RouteContext:
    """Accumulated state a route node inherits from its ancestors.

    Attributes:
        path: Path prefix built from ancestor segments
        params: Parameter name to validation rule, accumulated from ancestors
        controller: Controller instance declared by the nearest ancestor
    """

    path: str = ""
    params: Dict[str, Any] = field(default_factory=dict)
    controller: Optional[Controller] = None

    def fork(self) -> "RouteContext":
        """Copy for one child branch.

        ``path`` and ``params`` are value copies so siblings never see each
        other's additions. ``controller`` keeps the same instance.
        """
        return RouteContext(
            path=self.path, params=dict(self.params), controller=self.controller
        )

    def with_segment(self, segment: str) -> "RouteContext":
        if not segment:
            return self
        return replace(self, path=f"{self.path}/{segment}")

    def with_params(self, params: Mapping[str, Any]) -> "RouteContext":
        merged = dict(self.params)
        merged.update(params)
        return replace(self, params=merged)

    def with_controller(self, controller: Controller) -> "RouteContext":
        return replace(self, controller=controller)


__all__ = ["RouteContext"]
