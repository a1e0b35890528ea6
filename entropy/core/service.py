"""Core service that manages resources through their modules."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Protocol

from entropy.core.module.action import (
    CREATE_ACTION,
    DELETE_ACTION,
    UPDATE_ACTION,
    ActionRequest,
)
from entropy.core.module.driver import ExpandedResource, LogChunk, ResolvedDependency
from entropy.core.resource import (
    Filter,
    Resource,
    Revision,
    RevisionsSelector,
    State,
    Status,
    Store,
    UpdateRequest,
)
from entropy.errors import (
    ConflictError,
    InternalError,
    InvalidError,
    NotFoundError,
    UnsupportedError,
)

_DEFAULT_MAX_RETRIES = 10
_DEFAULT_SYNC_BACKOFF = timedelta(seconds=5)


class _ModuleService(Protocol):
    def plan_action(self, res: ExpandedResource, act: ActionRequest) -> Resource: ...

    def sync_state(self, res: ExpandedResource) -> State: ...

    def stream_logs(
        self, res: ExpandedResource, log_filter: Mapping[str, str] | None
    ) -> Iterable[LogChunk]: ...

    def get_output(self, res: ExpandedResource) -> bytes | None: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Service:
    """Reads, changes and keeps resources in sync."""

    def __init__(
        self,
        store: Store,
        module_svc: _ModuleService,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
        sync_backoff: timedelta = _DEFAULT_SYNC_BACKOFF,
        max_sync_retries: int = _DEFAULT_MAX_RETRIES,
    ) -> None:
        self._store = store
        self._module_svc = module_svc
        self._clock = clock or _utc_now
        self._logger = logger or logging.getLogger(__name__)
        self._sync_backoff = sync_backoff
        self._max_sync_retries = max_sync_retries

    # Reading.

    def get_resource(self, urn: str) -> Resource:
        """Return the resource with its current output.

        Raises NotFoundError if there is no such resource.
        """
        try:
            res = self._store.get_by_urn(urn)
        except NotFoundError as err:
            raise NotFoundError().with_msg(
                f"resource with urn '{urn}' not found"
            ) from err
        except Exception as err:
            raise InternalError().with_cause(err) from err

        mod_spec = self._expand(res)
        res.state.output = self._module_svc.get_output(mod_spec)
        return res

    def list_resources(self, res_filter: Filter) -> list[Resource]:
        """Return the resources matching the filter."""
        try:
            resources = self._store.list(res_filter)
        except Exception as err:
            raise InternalError().with_cause(err) from err
        return res_filter.apply(resources or [])

    def get_log(
        self, urn: str, log_filter: Mapping[str, str] | None
    ) -> Iterable[LogChunk]:
        """Return the log stream of a resource.

        Raises UnsupportedError if its kind cannot stream logs.
        """
        res = self.get_resource(urn)
        mod_spec = self._expand(res)
        try:
            return self._module_svc.stream_logs(mod_spec, log_filter)
        except UnsupportedError as err:
            raise UnsupportedError().with_msg(
                f"log streaming not supported for kind '{res.kind}'"
            ) from err

    def get_revisions(self, selector: RevisionsSelector) -> list[Revision]:
        """Return the revisions of the selected resource."""
        try:
            return self._store.revisions(selector) or []
        except Exception as err:
            raise InternalError().with_cause(err) from err

    # Writing.

    def create_resource(self, res: Resource) -> Resource:
        """Plan and store a new resource."""
        res = res.copy()
        res.validate(True)

        act = ActionRequest(
            name=CREATE_ACTION, params=res.spec.configs, labels=res.labels
        )
        res.spec.configs = None
        return self._exec_action(res, act)

    def update_resource(self, urn: str, req: UpdateRequest) -> Resource:
        """Apply new configs and labels to an existing resource."""
        if req.spec.dependencies:
            raise UnsupportedError().with_msg("updating dependencies is not supported")
        if not req.spec.configs:
            raise InvalidError().with_msg("no config is being updated, nothing to do")

        return self.apply_action(
            urn,
            ActionRequest(name=UPDATE_ACTION, params=req.spec.configs, labels=req.labels),
        )

    def delete_resource(self, urn: str) -> None:
        """Schedule a resource for deletion."""
        self.apply_action(urn, ActionRequest(name=DELETE_ACTION))

    def apply_action(self, urn: str, act: ActionRequest) -> Resource:
        """Run an action on a resource that is in a terminal state."""
        res = self.get_resource(urn)
        if not res.state.is_terminal():
            raise InvalidError().with_msg(
                f"cannot perform '{act.name}' on resource in '{res.state.status}'"
            )
        return self._exec_action(res, act)

    # Syncing.

    def run_syncer(self, interval: timedelta | float, stop_event: threading.Event) -> None:
        """Sync one resource every ``interval`` until ``stop_event`` is set."""
        seconds = (
            interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
        )
        while not stop_event.wait(seconds):
            try:
                self._store.sync_one(self._handle_sync)
            except Exception as err:  # keep the syncer alive
                self._logger.warning("SyncOne() failed: %s", err)

    def _handle_sync(self, res: Resource) -> Resource:
        res = res.copy()
        context = {
            "resource_urn": res.urn,
            "resource_status": str(res.state.status),
            "retries": res.state.sync_result.retries,
            "last_err": res.state.sync_result.last_error,
        }

        try:
            mod_spec = self._expand(res)
        except Exception as err:
            self._logger.error("SyncOne() failed: %s %s", err, context)
            raise

        try:
            new_state = self._module_svc.sync_state(mod_spec)
        except Exception as err:
            self._logger.error("SyncOne() failed: %s %s", err, context)
            sync_result = res.state.sync_result
            sync_result.last_error = str(err)
            sync_result.retries += 1
            if isinstance(err, InvalidError):
                # Invalid configs: retrying cannot help.
                res.state.status = Status.ERROR
                res.state.next_sync_at = None
            elif 0 < self._max_sync_retries <= sync_result.retries:
                res.state.status = Status.ERROR
                res.state.next_sync_at = None
            else:
                res.state.next_sync_at = self._clock() + self._sync_backoff
            return res

        res.state.sync_result.retries = 0
        res.state.sync_result.last_error = ""
        res.updated_at = self._clock()
        res.state = new_state
        self._logger.info(
            "SyncOne() finished: final_status=%s next_sync=%s %s",
            res.state.status,
            res.state.next_sync_at,
            context,
        )
        return res

    # Internals.

    def _expand(self, res: Resource) -> ExpandedResource:
        dependencies: dict[str, ResolvedDependency] = {}
        for key, dep_urn in (res.spec.dependencies or {}).items():
            try:
                dep = self.get_resource(dep_urn)
            except NotFoundError as err:
                raise InvalidError().with_msg(
                    f"dependency '{dep_urn}' not found"
                ) from err

            if dep.state.status != Status.COMPLETED:
                raise InvalidError().with_msg(
                    f"dependency '{dep_urn}' is in incomplete state ({dep.state.status})"
                )
            if dep.project != res.project:
                raise (
                    InvalidError()
                    .with_msg(f"dependency '{dep_urn}' not found")
                    .with_cause("cross-project references not allowed")
                )

            dependencies[key] = ResolvedDependency(kind=dep.kind, output=dep.state.output)

        return ExpandedResource(resource=res, dependencies=dependencies)

    def _exec_action(self, res: Resource, act: ActionRequest) -> Resource:
        planned = self._plan_change(res, act)
        creating = act.name == CREATE_ACTION

        if creating:
            planned.created_at = self._clock()
            planned.updated_at = planned.created_at
        else:
            planned.created_at = res.created_at
            planned.updated_at = self._clock()

        self._upsert(planned, creating, True, f"action:{act.name}")
        return planned

    def _plan_change(self, res: Resource, act: ActionRequest) -> Resource:
        mod_spec = self._expand(res)
        try:
            planned = self._module_svc.plan_action(mod_spec, act)
        except InvalidError:
            raise
        except Exception as err:
            raise (
                InternalError().with_msg("plan() failed").with_cause(err)
            ) from err

        planned.labels = merge_labels(res.labels, act.labels)
        planned.validate(act.name == CREATE_ACTION)
        return planned

    def _upsert(
        self, res: Resource, is_create: bool, save_revision: bool, reason: str
    ) -> None:
        try:
            if is_create:
                self._store.create(res)
            else:
                self._store.update(res, save_revision, reason)
        except Exception as err:
            if is_create and isinstance(err, ConflictError):
                raise ConflictError().with_msg(
                    f"resource with urn '{res.urn}' already exists"
                ) from err
            if not is_create and isinstance(err, NotFoundError):
                raise NotFoundError().with_msg(
                    f"resource with urn '{res.urn}' does not exist"
                ) from err
            raise InternalError().with_cause(err) from err


def merge_labels(
    m1: Mapping[str, str] | None, m2: Mapping[str, str] | None
) -> dict[str, str] | None:
    """Merge two label maps, the second winning, dropping empty values."""
    if m1 is None and m2 is None:
        return None
    merged = {**(m1 or {}), **(m2 or {})}
    return {k: v for k, v in merged.items() if v != ""}