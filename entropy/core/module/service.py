"""Service that routes resource operations to module drivers."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping

from entropy.core.module.action import ActionRequest
from entropy.core.module.driver import Driver, ExpandedResource, LogChunk, Loggable
from entropy.core.module.module import Descriptor, Module, ModuleStore, Registry
from entropy.core.resource import Resource, State
from entropy.errors import ConflictError, InvalidError, NotFoundError, UnsupportedError

__all__ = ["ModuleService", "generate_module_urn"]


def generate_module_urn(name: str, project: str) -> str:
    """Return the URN of the module with the given name in the project."""
    return f"orn:entropy:module:{project}:{name}"


class ModuleService:
    """Manages modules and dispatches resource work to their drivers."""

    def __init__(self, registry: Registry, store: ModuleStore) -> None:
        self._registry = registry
        self._store = store

    def plan_action(self, res: ExpandedResource, act: ActionRequest) -> Resource:
        """Validate the action and let the driver plan the change."""
        driver, desc = self._driver_for(res)
        desc.validate_dependencies(res.dependencies)
        desc.validate_action_request(res, act)
        return driver.plan(res, act)

    def sync_state(self, res: ExpandedResource) -> State:
        """Let the driver move the resource towards its desired state."""
        driver, desc = self._driver_for(res)
        desc.validate_dependencies(res.dependencies)
        return driver.sync(res)

    def stream_logs(
        self, res: ExpandedResource, log_filter: Mapping[str, str] | None
    ) -> Iterable[LogChunk]:
        """Return the log stream of the resource.

        Raises UnsupportedError if the driver cannot stream logs.
        """
        driver, _ = self._driver_for(res)
        if not isinstance(driver, Loggable):
            raise UnsupportedError().with_msg(
                f"log streaming not supported for kind '{res.resource.kind}'"
            )
        return driver.log(res, log_filter)

    def get_output(self, res: ExpandedResource) -> bytes | None:
        """Return the current external state reported by the driver."""
        driver, _ = self._driver_for(res)
        return driver.output(res)

    def get_module(self, urn: str) -> Module:
        return self._store.get_module(urn)

    def list_modules(self, project: str) -> list[Module]:
        return self._store.list_modules(project)

    def create_module(self, mod: Module) -> Module:
        """Validate, check the driver can be initialised, and store the module."""
        mod = dataclasses.replace(mod)
        mod.sanitise(True)
        self._init_driver(mod)

        try:
            self._store.create_module(mod)
        except ConflictError as err:
            raise (
                ConflictError()
                .with_msg("module with given name and project already exists")
                .with_cause(err)
            ) from err
        return mod

    def update_module(self, urn: str, new_configs: bytes | None) -> Module:
        """Replace the configs of an existing module."""
        mod = self._store.get_module(urn)
        mod.configs = new_configs
        mod.sanitise(False)
        self._store.update_module(mod)
        return mod

    def delete_module(self, urn: str) -> None:
        self._store.delete_module(urn)

    def _driver_for(self, res: ExpandedResource) -> tuple[Driver, Descriptor]:
        mod = self._discover_module(res.resource.kind, res.resource.project)
        return self._init_driver(mod)

    def _discover_module(self, kind: str, project: str) -> Module:
        urn = generate_module_urn(kind, project)
        try:
            return self._store.get_module(urn)
        except NotFoundError as err:
            raise (
                InvalidError()
                .with_msg(f"kind '{kind}' is not valid in project '{project}'")
                .with_cause(f"failed to find module with urn '{urn}'")
            ) from err

    def _init_driver(self, mod: Module) -> tuple[Driver, Descriptor]:
        try:
            return self._registry.get_driver(mod)
        except NotFoundError as err:
            raise InvalidError().with_msg(
                f"driver not found for kind '{mod.name}'"
            ) from err
        except InvalidError as err:
            raise (
                InvalidError()
                .with_msg("failed to init driver with given configs")
                .with_cause(err)
            ) from err