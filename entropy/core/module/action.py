"""Actions that modules support and requests to invoke them."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import jsonschema
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from entropy.errors import InternalError, InvalidError

CREATE_ACTION = "create"
UPDATE_ACTION = "update"
DELETE_ACTION = "delete"


@dataclass
class ActionRequest:
    """An invocation of an action on a module."""

    name: str = ""
    params: bytes | None = None
    labels: dict[str, str] | None = None


def _format_error(err: jsonschema.ValidationError) -> str:
    path = ".".join(str(part) for part in err.absolute_path) or "(root)"
    return f"{path}: {err.message}"


@dataclass
class ActionDesc:
    """Describes an action supported by a module."""

    name: str = ""
    description: str = ""
    param_schema: str = ""
    _validator: Any = field(default=None, init=False, repr=False, compare=False)

    def sanitise(self) -> None:
        """Compile the parameter schema, if any.

        Raises InvalidError if the schema is not valid JSON schema.
        """
        if not self.param_schema:
            return

        try:
            schema = json.loads(self.param_schema)
            validator_cls = validator_for(schema)
            validator_cls.check_schema(schema)
        except (ValueError, SchemaError) as exc:
            raise (
                InvalidError()
                .with_msg(f"parameter schema for action '{self.name}' is not valid")
                .with_cause(exc)
            ) from exc
        self._validator = validator_cls(schema)

    def validate_request(self, req: ActionRequest) -> None:
        """Check the request parameters against the compiled schema.

        Raises InvalidError listing the violations, or InternalError when the
        parameters cannot be read as JSON.
        """
        if self._validator is None:
            return

        try:
            instance = json.loads(req.params or b"")
        except ValueError as exc:
            raise InternalError().with_cause(exc) from exc

        problems = [_format_error(e) for e in self._validator.iter_errors(instance)]
        if problems:
            raise InvalidError().with_msg("\n".join(problems))