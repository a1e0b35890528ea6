"""Driver interfaces and the data handed to drivers."""

from __future__ import annotations

import abc
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from entropy.core.module.action import ActionRequest
from entropy.core.resource import Resource, State


@dataclass
class ResolvedDependency:
    kind: str = ""
    output: bytes | None = None


@dataclass
class LogChunk:
    data: bytes = b""
    labels: dict[str, str] | None = None


@dataclass
class ExpandedResource:
    """A resource together with its resolved dependencies."""

    resource: Resource = field(default_factory=Resource)
    dependencies: dict[str, ResolvedDependency] = field(default_factory=dict)


class Driver(abc.ABC):
    """Brings external systems to the state a resource describes."""

    @abc.abstractmethod
    def plan(self, res: ExpandedResource, act: ActionRequest) -> Resource:
        """Validate the action and return the resource with changes applied.

        Must have no side effects beyond the returned resource.
        """

    @abc.abstractmethod
    def sync(self, res: ExpandedResource) -> State:
        """Move the external system towards the resource's desired state.

        Called repeatedly until a terminal state is returned.
        """

    @abc.abstractmethod
    def output(self, res: ExpandedResource) -> bytes | None:
        """Return the current external state of the resource."""


class Loggable(Driver):
    """A driver that can stream log data for a resource."""

    @abc.abstractmethod
    def log(
        self, res: ExpandedResource, log_filter: Mapping[str, str] | None
    ) -> Iterable[LogChunk]:
        """Return the log chunks for the resource."""