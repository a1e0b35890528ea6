"""Resource API wrapper that logs failed requests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any


class LogWrapper:
    """Delegates to a resource API server, logging every failure."""

    def __init__(self, server: Any, logger: logging.Logger | None = None) -> None:
        self._server = server
        self._logger = logger or logging.getLogger(__name__)

    def _call(self, label: str, fn: Callable[[Any], Any], request: Any) -> Any:
        try:
            return fn(request)
        except Exception as err:
            self._logger.error("%s failed: %s", label, err)
            raise

    def list_resources(self, request: Mapping[str, Any]) -> Any:
        return self._call("ListResources()", self._server.list_resources, request)

    def get_resource(self, request: Mapping[str, Any]) -> Any:
        return self._call("GetResource()", self._server.get_resource, request)

    def create_resource(self, request: Mapping[str, Any]) -> Any:
        return self._call("CreateResource()", self._server.create_resource, request)

    def update_resource(self, request: Mapping[str, Any]) -> Any:
        return self._call("UpdateResource()", self._server.update_resource, request)

    def delete_resource(self, request: Mapping[str, Any]) -> Any:
        return self._call("DeleteResource()", self._server.delete_resource, request)

    def apply_action(self, request: Mapping[str, Any]) -> Any:
        return self._call("ApplyAction()", self._server.apply_action, request)

    def get_log(self, request: Mapping[str, Any]) -> Iterator[Any]:
        stream = self._call("GetLog()", self._server.get_log, request)
        return self._logged_stream(stream)

    def get_resource_revisions(self, request: Mapping[str, Any]) -> Any:
        return self._call(
            "GetResourceRevisions()", self._server.get_resource_revisions, request
        )

    def _logged_stream(self, stream: Iterable[Any]) -> Iterator[Any]:
        try:
            yield from stream
        except Exception as err:
            self._logger.error("GetLog() failed: %s", err)
            raise