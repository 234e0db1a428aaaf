"""Declarative route tree nodes."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from routetree.exceptions import ConfigurationError
from routetree.pipeline.guards import GuardFn

from .controller import ControllerFactory

_ROUTE_KEYS = frozenset(
    [
        "path",
        "method",
        "controller",
        "handler",
        "config",
        "validate",
        "guards",
        "children",
    ]
)


@dataclass
class Route:
    """One node of a route tree.

    A node with a ``handler`` is a leaf and compiles to a dispatch entry. A
    node without one only contributes context (path prefix, controller,
    parameter schema) to its children.

    Attributes:
        path: Path segment(s) appended to the inherited prefix; ``None`` adds nothing
        method: HTTP method for the leaf
        controller: Factory producing the controller for this subtree
        handler: Name of the controller handler served by this leaf
        config: Passthrough options merged into the compiled entry config
        validate: Validation rules; ``validate["params"]`` is inherited by descendants
        guards: Checks run before the handler, for this node only
        children: Child nodes
    """

    path: Optional[str] = None
    method: str = "get"
    controller: Optional[ControllerFactory] = None
    handler: Optional[str] = None
    config: Dict[str, Any] = field(default_factory=dict)
    validate: Optional[Dict[str, Any]] = None
    guards: List[GuardFn] = field(default_factory=list)
    children: List["Route"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return self.handler is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Route":
        """Build a route node (and its children) from a plain mapping."""
        unknown = set(data) - _ROUTE_KEYS
        if unknown:
            raise ConfigurationError(
                f"Unknown route keys: {', '.join(sorted(unknown))}"
            )
        values = dict(data)
        values["children"] = [
            coerce_route(child) for child in values.get("children") or []
        ]
        values["guards"] = list(values.get("guards") or [])
        values["config"] = dict(values.get("config") or {})
        if values.get("method") is None:
            values.pop("method", None)
        return cls(**values)


def coerce_route(node: Union[Route, Mapping[str, Any]]) -> Route:
    """Accept either a ``Route`` or an equivalent mapping."""
    if isinstance(node, Route):
        return node
    if isinstance(node, Mapping):
        return Route.from_dict(node)
    raise ConfigurationError(
        f"Route nodes must be Route instances or mappings, got {type(node).__name__}"
    )


__all__ = ["Route", "coerce_route"]
