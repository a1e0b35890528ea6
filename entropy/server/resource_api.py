"""API server exposing resource operations."""

from __future__ import annotations

import contextlib
import json
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Protocol

from entropy.core.module.action import ActionRequest
from entropy.core.module.driver import LogChunk
from entropy.core.resource import (
    Filter,
    Resource,
    Revision,
    RevisionsSelector,
    UpdateRequest,
)
from entropy.errors import RPCError, to_rpc_error
from entropy.server.resource_mappers import (
    resource_from_proto,
    resource_spec_from_proto,
    resource_to_proto,
    revision_to_proto,
)


class _ResourceService(Protocol):
    def get_resource(self, urn: str) -> Resource: ...

    def list_resources(self, res_filter: Filter) -> list[Resource]: ...

    def create_resource(self, res: Resource) -> Resource: ...

    def update_resource(self, urn: str, req: UpdateRequest) -> Resource: ...

    def delete_resource(self, urn: str) -> None: ...

    def apply_action(self, urn: str, act: ActionRequest) -> Resource: ...

    def get_log(
        self, urn: str, log_filter: Mapping[str, str] | None
    ) -> Iterable[LogChunk]: ...

    def get_revisions(self, selector: RevisionsSelector) -> list[Revision]: ...


@contextlib.contextmanager
def _rpc_errors() -> Iterator[None]:
    try:
        yield
    except RPCError:
        raise
    except Exception as err:
        raise to_rpc_error(err) from err


class ResourceAPIServer:
    """Handles resource API requests; failures are raised as RPCError."""

    def __init__(self, resource_service: _ResourceService) -> None:
        self._svc = resource_service

    def create_resource(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            res = resource_from_proto(request.get("resource"), False)
            created = self._svc.create_resource(res)
            return {"resource": resource_to_proto(created)}

    def update_resource(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            new_spec = resource_spec_from_proto(request.get("new_spec"))
            update = UpdateRequest(spec=new_spec, labels=request.get("labels"))
            res = self._svc.update_resource(request.get("urn", ""), update)
            return {"resource": resource_to_proto(res)}

    def get_resource(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            res = self._svc.get_resource(request.get("urn", ""))
            return {"resource": resource_to_proto(res)}

    def list_resources(self, request: Mapping[str, Any]) -> dict[str, Any]:
        res_filter = Filter(
            kind=request.get("kind", ""),
            project=request.get("project", ""),
            labels=request.get("labels"),
        )
        with _rpc_errors():
            resources = self._svc.list_resources(res_filter)
            return {"resources": [resource_to_proto(r) for r in resources or []]}

    def delete_resource(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            self._svc.delete_resource(request.get("urn", ""))
        return {}

    def apply_action(self, request: Mapping[str, Any]) -> dict[str, Any]:
        params = request.get("params")
        struct = params if isinstance(params, dict) else {}
        params_json = json.dumps(struct, separators=(",", ":")).encode()

        action = ActionRequest(
            name=request.get("action", ""),
            params=params_json,
            labels=request.get("labels"),
        )
        with _rpc_errors():
            res = self._svc.apply_action(request.get("urn", ""), action)
            return {"resource": resource_to_proto(res)}

    def get_log(self, request: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
        """Return a stream of log responses for the resource."""
        with _rpc_errors():
            chunks = self._svc.get_log(request.get("urn", ""), request.get("filter"))
        return (
            {"chunk": {"data": chunk.data, "labels": chunk.labels}} for chunk in chunks
        )

    def get_resource_revisions(self, request: Mapping[str, Any]) -> dict[str, Any]:
        selector = RevisionsSelector(urn=request.get("urn", ""))
        with _rpc_errors():
            revisions = self._svc.get_revisions(selector)
            return {"revisions": [revision_to_proto(r) for r in revisions or []]}