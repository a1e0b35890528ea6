# entropy

A core for safely and predictably creating, changing and improving cloud
applications and infrastructure. Everything that can be managed is a
*resource*; every resource has a *kind*, and each kind is handled by a
*module* whose *driver* plans actions and syncs the resource towards its
desired state.

## Install

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## What is in the package

- `entropy.core.resource` – `Resource`, `Spec`, `State`, `SyncResult`,
  `Status`, `Filter`, `UpdateRequest`, `RevisionsSelector`, `Revision` and the
  abstract `Store` interface. `Resource.validate(is_create)` trims and checks
  kind, name and project, and on create assigns the URN built by
  `generate_urn(kind, project, name)`: `orn:entropy:<kind>:<project>:<name>`.
  `State.is_terminal()` is true for `STATUS_COMPLETED` and `STATUS_ERROR`.
- `entropy.core.module` – `action` (`ActionRequest`, `ActionDesc` with
  optional JSON-schema validation of action parameters), `driver` (the
  `Driver` and `Loggable` interfaces, `ExpandedResource`,
  `ResolvedDependency`, `LogChunk`), `module` (`Module`, `Descriptor`, the
  abstract `Registry` and `ModuleStore`) and `service` (`ModuleService`,
  which finds the module for a resource kind and dispatches plan, sync,
  output and log calls to its driver; module URNs come from
  `generate_module_urn(name, project)`).
- `entropy.core.service` – `Service(store, module_svc, clock, logger,
  sync_backoff, max_sync_retries)`, the resource lifecycle:
  `create_resource`, `update_resource`, `delete_resource`, `apply_action`,
  `get_resource`, `list_resources`, `get_revisions`, `get_log`, and
  `run_syncer(interval, stop_event)`, which syncs one resource per interval
  until the `threading.Event` is set, retrying failed syncs with back-off and
  moving a resource to `STATUS_ERROR` on invalid configs or when retries run
  out. `merge_labels(m1, m2)` merges label maps and drops empty values.
- `entropy.server` – `ResourceAPIServer` and `ModuleAPIServer` take requests
  as plain dictionaries keyed by wire field names and return dictionaries;
  `LogWrapper` wraps a resource API server and logs every failure. The
  mappers in `entropy.server.resource_mappers` and `module_to_proto` /
  `module_from_proto` convert between core objects and these messages.
  Failures are raised as `entropy.errors.RPCError`.
- `entropy.errors` – `NotFoundError`, `InvalidError`, `ConflictError`,
  `InternalError`, `UnsupportedError` (all `EntropyError`) with `with_msg`
  and `with_cause`, and `to_rpc_error`, which maps them onto `StatusCode`
  values.
- `entropy.store.tags` – `tags_to_label_map`, `label_map_to_tags` and
  `sync_result_as_json`, encodings used when storing labels and sync
  results.
- `entropy.cli.display` – `display(value, fmt, pretty_formatter, stream)`
  and the formatters `json_format`, `yaml_format`, `toml_format`,
  `plain_format`.
- `entropy.cli.config` – `Config`, `SyncerConfig`, `ServeConfig`,
  `parse_duration`, `load_config` and the `entropy-configs` command.

## Example

```python
from entropy.core.resource import Resource, Filter, generate_urn

res = Resource(kind="firehose", name="orders", project="shop")
res.validate(True)
assert res.urn == generate_urn("firehose", "shop", "orders")

matching = Filter(kind="firehose", project="shop").apply([res])
```

Output can be rendered in several formats:

```python
import sys
from entropy.cli.display import display

display({"urn": res.urn}, "yaml", None, sys.stdout)
```

Supported formats are `json`, `yaml`/`yml`, `toml` and `pretty`/`human`;
anything else raises `ValueError`.

## Configuration

`load_config(path)` reads a YAML file, or without a path `entropy.yaml` (or
`entropy.yml`) in the current directory, falling back to defaults when none
is found. It holds `log` and `telemetry` settings (kept as mappings), syncer
intervals (`sync_interval`, `refresh_interval`, `extend_lock_by`, written as
durations such as `1s` or `1m30s`), the service `host`, `port` and
`http_addr`, and `pg_conn_str`.

To print the configuration currently in effect:

```
entropy-configs
entropy-configs --config path/to/entropy.yaml
```

## What the package does not do

- It has no storage back end. `Store` and `ModuleStore` are interfaces;
  you supply the implementation. `pg_conn_str` is loaded but nothing
  connects to it.
- It ships no module drivers and no `Registry` implementation.
- It runs no network server. The API server classes handle dictionaries
  in-process; there is no RPC or HTTP listener, and no command to serve,
  migrate, or act as a client. `entropy-configs` is the only command.