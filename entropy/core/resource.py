"""Resource model: resources, their specs, states, filters and revisions."""

from __future__ import annotations

import abc
import dataclasses
import enum
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from entropy.errors import InvalidError

_URN_SEPARATOR = ":"
_NAMING_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]+$")


class Status(str, enum.Enum):
    """Lifecycle status of a resource."""

    UNSPECIFIED = "STATUS_UNSPECIFIED"  # unknown
    PENDING = "STATUS_PENDING"  # intermediate
    ERROR = "STATUS_ERROR"  # terminal
    DELETED = "STATUS_DELETED"  # terminal
    COMPLETED = "STATUS_COMPLETED"  # terminal

    def __str__(self) -> str:
        return self.value


@dataclass
class SyncResult:
    retries: int = 0
    last_error: str = ""


@dataclass
class State:
    status: str = ""
    output: bytes | None = None
    module_data: bytes | None = None
    next_sync_at: datetime | None = None
    sync_result: SyncResult = field(default_factory=SyncResult)

    def is_terminal(self) -> bool:
        """True if the resource needs no further sync."""
        return self.status in (Status.COMPLETED, Status.ERROR)

    def in_deletion(self) -> bool:
        """True if the resource is scheduled for deletion."""
        return self.status == Status.DELETED

    def clone(self) -> State:
        """Copy status, output and module data into a fresh state."""
        return State(
            status=self.status,
            output=None if self.output is None else bytes(self.output),
            module_data=None if self.module_data is None else bytes(self.module_data),
        )


@dataclass
class Spec:
    configs: bytes | None = None
    dependencies: dict[str, str] | None = None


@dataclass
class Resource:
    urn: str = ""
    kind: str = ""
    name: str = ""
    project: str = ""
    labels: dict[str, str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    spec: Spec = field(default_factory=Spec)
    state: State = field(default_factory=State)

    def validate(self, is_create: bool) -> None:
        """Normalise and check naming; on create, assign the URN.

        Raises InvalidError if kind, name or project is not well formed.
        """
        self.kind = self.kind.strip()
        self.name = self.name.strip()
        self.project = self.project.strip()

        for attr in ("kind", "name", "project"):
            if not _NAMING_PATTERN.match(getattr(self, attr)):
                raise InvalidError().with_msg(
                    f"{attr} must match pattern '{_NAMING_PATTERN.pattern}'"
                )

        if not self.state.status:
            self.state.status = Status.UNSPECIFIED

        if is_create:
            self.urn = generate_urn(self.kind, self.project, self.name)

    def copy(self) -> Resource:
        """Return a deep copy of this resource."""
        return dataclasses.replace(
            self,
            labels=None if self.labels is None else dict(self.labels),
            spec=Spec(
                configs=self.spec.configs,
                dependencies=None
                if self.spec.dependencies is None
                else dict(self.spec.dependencies),
            ),
            state=dataclasses.replace(
                self.state, sync_result=dataclasses.replace(self.state.sync_result)
            ),
        )


@dataclass
class Filter:
    kind: str = ""
    project: str = ""
    labels: dict[str, str] | None = None

    def apply(self, resources: Iterable[Resource]) -> list[Resource]:
        """Return the resources that match this filter, in order."""
        return [r for r in resources if self._matches(r)]

    def _matches(self, res: Resource) -> bool:
        if self.kind and self.kind != res.kind:
            return False
        if self.project and self.project != res.project:
            return False
        res_labels = res.labels or {}
        return all(res_labels.get(k, "") == v for k, v in (self.labels or {}).items())


@dataclass
class UpdateRequest:
    spec: Spec = field(default_factory=Spec)
    labels: dict[str, str] | None = None


@dataclass
class RevisionsSelector:
    urn: str = ""


@dataclass
class Revision:
    id: int = 0
    urn: str = ""
    reason: str = ""
    labels: dict[str, str] | None = None
    created_at: datetime | None = None
    spec: Spec = field(default_factory=Spec)


SyncFn = Callable[[Resource], Resource]
MutationHook = Callable[[], None]


class Store(abc.ABC):
    """Persistence for resources and their revisions."""

    @abc.abstractmethod
    def get_by_urn(self, urn: str) -> Resource:
        """Return the resource, raising NotFoundError if absent."""

    @abc.abstractmethod
    def list(self, res_filter: Filter) -> list[Resource]:
        """Return resources matching the filter."""

    @abc.abstractmethod
    def create(self, res: Resource, *hooks: MutationHook) -> None:
        """Persist a new resource."""

    @abc.abstractmethod
    def update(
        self, res: Resource, save_revision: bool, reason: str, *hooks: MutationHook
    ) -> None:
        """Persist changes to an existing resource."""

    @abc.abstractmethod
    def delete(self, urn: str, *hooks: MutationHook) -> None:
        """Remove a resource."""

    @abc.abstractmethod
    def revisions(self, selector: RevisionsSelector) -> list[Revision]:
        """Return the revisions of the selected resource, newest first."""

    @abc.abstractmethod
    def sync_one(self, sync_fn: SyncFn) -> None:
        """Pick one resource due for sync, run ``sync_fn`` and save the result."""


def generate_urn(kind: str, project: str, name: str) -> str:
    """Build the URN identifying a resource.

    Changing this invalidates all existing resource identifiers.
    """
    return _URN_SEPARATOR.join(["orn", "entropy", kind, project, name])