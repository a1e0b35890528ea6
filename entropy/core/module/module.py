"""Modules, module descriptors and the interfaces that serve them."""

from __future__ import annotations

import abc
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from entropy.core.module.action import ActionDesc, ActionRequest
from entropy.core.module.driver import Driver, ExpandedResource, ResolvedDependency
from entropy.errors import InvalidError


def generate_module_urn(name: str, project: str) -> str:
    """Build the URN identifying a module."""
    return f"orn:entropy:module:{project}:{name}"


@dataclass
class Module:
    """All the data needed to initialise a module."""

    urn: str = ""
    name: str = ""
    project: str = ""
    configs: bytes | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def sanitise(self, is_create: bool) -> None:
        """Check required fields; on create, assign URN and timestamps.

        Raises InvalidError if name or project is missing.
        """
        if not self.name:
            raise InvalidError().with_msg("name must be set")
        if not self.project:
            raise InvalidError().with_msg("project must be set")

        if is_create:
            self.urn = generate_module_urn(self.name, self.project)
            self.created_at = datetime.now(timezone.utc)
            self.updated_at = self.created_at
        self.urn = self.urn.strip()


@dataclass
class Descriptor:
    """What a module supports: its resource kind, actions and dependencies."""

    kind: str = ""
    actions: list[ActionDesc] = field(default_factory=list)
    dependencies: dict[str, str] = field(default_factory=dict)
    driver_factory: Callable[[bytes | None], Driver] | None = field(
        default=None, repr=False, compare=False
    )

    def validate_dependencies(
        self, dependencies: Mapping[str, ResolvedDependency]
    ) -> None:
        """Raise InvalidError unless every required dependency is present
        and of the wanted kind."""
        for key, want_kind in self.dependencies.items():
            resolved = dependencies.get(key)
            if resolved is None:
                raise InvalidError().with_msg(
                    f"kind '{self.kind}' needs resource of kind '{want_kind}' at key '{key}'"
                )
            if resolved.kind != want_kind:
                raise InvalidError().with_msg(
                    f"value for '{key}' must be of kind '{want_kind}', not '{resolved.kind}'"
                )

    def validate_action_request(self, res: ExpandedResource, req: ActionRequest) -> None:
        """Raise InvalidError if the action is unknown or its params invalid."""
        action = self.find_action(req.name)
        if action is None:
            raise InvalidError().with_msg(
                f"action '{req.name}' is not valid on kind '{res.resource.kind}'"
            )
        action.validate_request(req)

    def find_action(self, name: str) -> ActionDesc | None:
        """Return the action with the given name, or None."""
        return next((a for a in self.actions if a.name == name), None)


class Registry(abc.ABC):
    """Installs and hands out module drivers."""

    @abc.abstractmethod
    def get_driver(self, mod: Module) -> tuple[Driver, Descriptor]:
        """Return the driver and descriptor for a module.

        Raises NotFoundError for an unknown module and InvalidError for bad configs.
        """


class ModuleStore(abc.ABC):
    """Persistence for the modules defined in each project."""

    @abc.abstractmethod
    def get_module(self, urn: str) -> Module:
        """Return the module, raising NotFoundError if absent."""

    @abc.abstractmethod
    def list_modules(self, project: str) -> list[Module]:
        """Return modules of the project, or all when project is empty."""

    @abc.abstractmethod
    def create_module(self, mod: Module) -> None:
        """Persist a new module."""

    @abc.abstractmethod
    def update_module(self, mod: Module) -> None:
        """Persist changes to a module."""

    @abc.abstractmethod
    def delete_module(self, urn: str) -> None:
        """Remove a module."""