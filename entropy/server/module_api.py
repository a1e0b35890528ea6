"""API server exposing module operations, and module message conversions."""

from __future__ import annotations

import contextlib
import json
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from typing import Any, Protocol

from entropy.core.module.module import Module
from entropy.errors import InvalidError, RPCError, to_rpc_error

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class _ModuleService(Protocol):
    def get_module(self, urn: str) -> Module: ...

    def list_modules(self, project: str) -> list[Module]: ...

    def create_module(self, mod: Module) -> Module: ...

    def update_module(self, urn: str, new_configs: bytes | None) -> Module: ...

    def delete_module(self, urn: str) -> None: ...


def module_to_proto(mod: Module) -> dict[str, Any]:
    """Build the API message for a module.

    Raises ValueError if the stored configs are not valid JSON.
    """
    configs = json.loads(mod.configs) if mod.configs else None
    return {
        "urn": mod.urn,
        "name": mod.name,
        "configs": configs,
        "project": mod.project,
        "created_at": mod.created_at,
        "updated_at": mod.updated_at,
    }


def module_from_proto(msg: Mapping[str, Any] | None) -> Module:
    """Build a module from its API message.

    Raises InvalidError if configs are missing or not valid JSON.
    """
    msg = msg or {}
    return Module(
        urn=msg.get("urn", ""),
        name=msg.get("name", ""),
        configs=_configs_as_raw_json(msg),
        project=msg.get("project", ""),
        created_at=msg.get("created_at") or _EPOCH,
        updated_at=msg.get("updated_at") or _EPOCH,
    )


def _configs_as_raw_json(msg: Mapping[str, Any]) -> bytes:
    invalid = InvalidError().with_msg(
        "'configs' field must be specified and must be valid JSON"
    )
    configs = msg.get("configs")
    if configs is None:
        raise invalid
    try:
        return json.dumps(configs, separators=(",", ":")).encode()
    except (TypeError, ValueError) as err:
        raise invalid.with_cause(err) from err


@contextlib.contextmanager
def _rpc_errors() -> Iterator[None]:
    try:
        yield
    except RPCError:
        raise
    except Exception as err:
        raise to_rpc_error(err) from err


class ModuleAPIServer:
    """Handles module API requests; failures are raised as RPCError."""

    def __init__(self, module_service: _ModuleService) -> None:
        self._svc = module_service

    def list_modules(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            mods = self._svc.list_modules(request.get("project", ""))
            return {"modules": [module_to_proto(m) for m in mods or []]}

    def get_module(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            mod = self._svc.get_module(request.get("urn", ""))
            return {"module": module_to_proto(mod)}

    def create_module(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            mod = module_from_proto(request.get("module"))
            created = self._svc.create_module(mod)
            return {"module": module_to_proto(created)}

    def update_module(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            new_configs = _configs_as_raw_json(request)
            updated = self._svc.update_module(request.get("urn", ""), new_configs)
            return {"module": module_to_proto(updated)}

    def delete_module(self, request: Mapping[str, Any]) -> dict[str, Any]:
        with _rpc_errors():
            self._svc.delete_module(request.get("urn", ""))
        return {}