"""Conversions between resource models and their API message form.

API messages are plain dictionaries keyed by the wire field names. JSON
fields such as configs and outputs hold decoded JSON values, timestamps
hold ``datetime`` objects.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from entropy.core.resource import Resource, Revision, Spec, State, Status
from entropy.errors import EntropyError, InternalError, InvalidError

_STATUS_NAMES = frozenset(s.value for s in Status)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MISSING = object()


def _json_bytes(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":")).encode()


def _as_time(value: datetime | None) -> datetime:
    return _EPOCH if value is None else value


def resource_to_proto(res: Resource) -> dict[str, Any]:
    """Build the API message for a resource.

    Raises InternalError if the state or spec cannot be converted.
    """
    try:
        state = resource_state_to_proto(res.state)
    except EntropyError as err:
        raise InternalError().with_msg("state to protobuf failed").with_cause(err) from err

    try:
        spec = resource_spec_to_proto(res.spec)
    except EntropyError as err:
        raise InternalError().with_msg("spec to protobuf failed").with_cause(err) from err

    return {
        "urn": res.urn,
        "kind": res.kind,
        "project": res.project,
        "name": res.name,
        "labels": res.labels,
        "created_at": res.created_at,
        "updated_at": res.updated_at,
        "spec": spec,
        "state": state,
    }


def resource_state_to_proto(state: State) -> dict[str, Any]:
    """Build the API message for a resource state.

    Raises InternalError if the output is not valid JSON.
    """
    output = None
    if state.output:
        try:
            output = json.loads(state.output)
        except ValueError as err:
            raise (
                InternalError().with_msg("failed to unmarshal output").with_cause(err)
            ) from err

    status = str(state.status)
    if status not in _STATUS_NAMES:
        status = Status.UNSPECIFIED.value

    return {
        "status": status,
        "output": output,
        "module_data": state.module_data,
        "log_options": None,
        "sync_retries": state.sync_result.retries,
        "sync_last_error": state.sync_result.last_error,
        "next_sync_at": state.next_sync_at,
    }


def resource_spec_to_proto(spec: Spec) -> dict[str, Any]:
    """Build the API message for a resource spec.

    Raises InternalError if the configs are missing or not valid JSON.
    """
    try:
        configs = json.loads(spec.configs)  # type: ignore[arg-type]
    except (TypeError, ValueError) as err:
        raise (
            InternalError()
            .with_msg("json.Unmarshal failed for spec.configs")
            .with_cause(err)
        ) from err

    dependencies = [
        {"key": key, "value": ref} for key, ref in (spec.dependencies or {}).items()
    ]
    return {"configs": configs, "dependencies": dependencies}


def resource_from_proto(
    msg: Mapping[str, Any] | None, include_state: bool
) -> Resource:
    """Build a resource from its API message.

    Raises InvalidError for duplicate dependency keys or configs/output that
    cannot be encoded as JSON.
    """
    msg = msg or {}
    spec = resource_spec_from_proto(msg.get("spec"))

    res = Resource(
        urn=msg.get("urn", ""),
        kind=msg.get("kind", ""),
        name=msg.get("name", ""),
        labels=msg.get("labels"),
        project=msg.get("project", ""),
        created_at=_as_time(msg.get("created_at")),
        updated_at=_as_time(msg.get("updated_at")),
        spec=spec,
    )

    if include_state:
        state_msg = msg.get("state") or {}
        output = state_msg.get("output")
        struct = output if isinstance(output, dict) else {}
        try:
            output_json = _json_bytes(struct)
        except (TypeError, ValueError) as err:
            raise (
                InvalidError().with_msg("state.output is not valid json").with_cause(err)
            ) from err

        res.state = State(
            status=state_msg.get("status") or Status.UNSPECIFIED.value,
            output=output_json,
            module_data=state_msg.get("module_data"),
        )

    return res


def resource_spec_from_proto(spec: Mapping[str, Any] | None) -> Spec:
    """Build a resource spec from its API message.

    Raises InvalidError for a dependency key given twice or configs that
    cannot be encoded as JSON.
    """
    spec = spec or {}
    dependencies: dict[str, str] = {}
    for dep in spec.get("dependencies") or []:
        key, value = dep.get("key", ""), dep.get("value", "")
        if key in dependencies:
            raise InvalidError().with_msg(
                f"dependency key '{key}' is set more than once"
            )
        dependencies[key] = value

    configs = spec.get("configs", _MISSING)
    if configs is _MISSING:
        configs = {}
    try:
        configs_json = _json_bytes(configs)
    except (TypeError, ValueError) as err:
        raise InvalidError().with_msg("configs is not valid JSON").with_cause(err) from err

    return Spec(configs=configs_json, dependencies=dependencies)


def revision_to_proto(revision: Revision) -> dict[str, Any]:
    """Build the API message for a resource revision."""
    return {
        "id": str(revision.id),
        "urn": revision.urn,
        "reason": revision.reason,
        "labels": revision.labels,
        "created_at": revision.created_at,
        "spec": resource_spec_to_proto(revision.spec),
    }