"""Request validation for compiled routes.

The ``validate`` section of a compiled route's config is turned into pydantic
models when the route is mounted. Supported keys:

- ``params``: mapping of path parameter name to rule; rules for names absent
  from the route path are ignored
- ``query``: mapping of query parameter name to rule
- ``payload``: pydantic model class, or mapping of body field name to rule

A rule is a type annotation (``int``, ``Annotated[int, Field(ge=1)]``) for a
required value, or a ``(type, default)`` tuple. Failures raise FastAPI's
``RequestValidationError``, answered by FastAPI with its standard 422 body.
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, ValidationError, create_model

_PATH_PARAM = re.compile(r"\{([^}:]+)(?::[^}]*)?\}")


class _LenientModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


def _field_definition(rule: Any) -> Tuple[Any, Any]:
    if isinstance(rule, tuple):
        return rule
    return (rule, ...)


def path_param_names(path: str) -> List[str]:
    """Names of the ``{name}`` parameters in a route path, in order."""
    return _PATH_PARAM.findall(path)


def build_model(
    name: str, rules: Optional[Mapping[str, Any]]
) -> Optional[Type[BaseModel]]:
    """Create a pydantic model from a mapping of field rules.

    Args:
        name: Model class name
        rules: Field name to rule mapping

    Returns:
        Model class, or None when there is nothing to validate
    """
    if not rules:
        return None
    fields: Dict[str, Any] = {
        field_name: _field_definition(rule) for field_name, rule in rules.items()
    }
    return create_model(name, __base__=_LenientModel, **fields)


def _located_errors(exc: ValidationError, location: str) -> List[Dict[str, Any]]:
    return [
        {**error, "loc": (location, *error.get("loc", ()))}
        for error in exc.errors(include_url=False)
    ]


class RequestValidator:
    """Validates one route's requests against its ``validate`` rules.

    Validated path parameters replace ``request.path_params``. Validated
    query and payload models are stored on ``request.state.query`` and
    ``request.state.payload``.
    """

    def __init__(
        self, validate: Optional[Mapping[str, Any]] = None, path: Optional[str] = None
    ) -> None:
        """Build the models for one route.

        Args:
            validate: The route's ``validate`` config
            path: Route path; when given, only rules for its parameters apply
        """
        validate = validate or {}
        params = validate.get("params") or {}
        if path is not None:
            names = set(path_param_names(path))
            params = {name: rule for name, rule in params.items() if name in names}
        self.params_model = build_model("PathParams", params)
        self.query_model = build_model("QueryParams", validate.get("query"))

        payload = validate.get("payload")
        if isinstance(payload, type) and issubclass(payload, BaseModel):
            self.payload_model: Optional[Type[BaseModel]] = payload
        else:
            self.payload_model = build_model("Payload", payload)

    @property
    def is_empty(self) -> bool:
        return (
            self.params_model is None
            and self.query_model is None
            and self.payload_model is None
        )

    async def validate(self, request: Request) -> None:
        """Validate ``request`` in place.

        Raises:
            RequestValidationError: If any section fails validation
        """
        if self.params_model is not None:
            params = self._check(
                self.params_model, dict(request.path_params), "path"
            )
            request.scope["path_params"] = {
                **request.path_params,
                **params.model_dump(),
            }

        if self.query_model is not None:
            request.state.query = self._check(
                self.query_model, dict(request.query_params), "query"
            )

        if self.payload_model is not None:
            try:
                body = await request.json()
            except json.JSONDecodeError as e:
                raise RequestValidationError(
                    [
                        {
                            "type": "json_invalid",
                            "loc": ("body", e.pos),
                            "msg": "JSON decode error",
                            "input": {},
                            "ctx": {"error": e.msg},
                        }
                    ]
                ) from e
            request.state.payload = self._check(self.payload_model, body, "body")

    @staticmethod
    def _check(model: Type[BaseModel], data: Any, location: str) -> BaseModel:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise RequestValidationError(_located_errors(e, location)) from e


__all__ = ["RequestValidator", "build_model", "path_param_names"]
