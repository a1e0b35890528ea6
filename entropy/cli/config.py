"""Application configuration and the command that shows it."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

_log = logging.getLogger(__name__)

DEFAULT_PG_CONN_STR = "postgres://postgres@localhost:5432/entropy?sslmode=disable"
_DEFAULT_NAME = "entropy"
_DEFAULT_EXTENSIONS = (".yaml", ".yml")

_UNIT_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``300ms``, ``1.5h`` or ``1m30s``.

    Raises ValueError if the text is not a valid duration.
    """
    invalid = ValueError(f'time: invalid duration "{text}"')
    s = text
    sign = 1
    if s and s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise invalid

    total = Decimal(0)
    pos = 0
    while pos < len(s):
        match = _COMPONENT.match(s, pos)
        if match is None:
            raise invalid
        try:
            total += Decimal(match.group(1)) * _UNIT_NS[match.group(2)]
        except InvalidOperation as exc:
            raise invalid from exc
        pos = match.end()

    nanos = int(total) * sign
    return timedelta(microseconds=nanos // 1000 if nanos >= 0 else -((-nanos) // 1000))


def _format_duration(td: timedelta) -> str:
    nanos = ((td.days * 86400 + td.seconds) * 1_000_000 + td.microseconds) * 1000
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)

    if nanos < 1_000_000_000:
        for suffix, unit, digits in (("ms", 1_000_000, 6), ("µs", 1_000, 3)):
            if nanos >= unit:
                whole, frac = divmod(nanos, unit)
                text = str(whole)
                if frac:
                    text += "." + f"{frac:0{digits}d}".rstrip("0")
                return f"{sign}{text}{suffix}"
        return f"{sign}{nanos}ns"

    secs, frac = divmod(nanos, 1_000_000_000)
    hours, rem = divmod(secs, 3600)
    minutes, seconds = divmod(rem, 60)
    out = str(seconds)
    if frac:
        out += "." + f"{frac:09d}".rstrip("0")
    out += "s"
    if hours:
        out = f"{hours}h{minutes}m{out}"
    elif minutes:
        out = f"{minutes}m{out}"
    return sign + out


def _duration(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, str):
        return parse_duration(value)
    if isinstance(value, int) and not isinstance(value, bool):
        # Plain numbers are nanoseconds.
        return timedelta(microseconds=value / 1000)
    raise ValueError(f"invalid duration value {value!r}")


@dataclass
class SyncerConfig:
    sync_interval: timedelta = timedelta(seconds=1)
    refresh_interval: timedelta = timedelta(seconds=3)
    extend_lock_by: timedelta = timedelta(seconds=5)


@dataclass
class ServeConfig:
    host: str = ""
    port: int = 8080
    http_address: str = ":8081"

    def http_addr(self) -> str:
        """Address the HTTP server listens on."""
        return self.http_address

    def grpc_addr(self) -> str:
        """Address the RPC server listens on."""
        return f"{self.host}:{self.port}"


@dataclass
class Config:
    """The application configuration."""

    log: dict[str, Any] = field(default_factory=dict)
    syncer: SyncerConfig = field(default_factory=SyncerConfig)
    service: ServeConfig = field(default_factory=ServeConfig)
    pg_conn_str: str = DEFAULT_PG_CONN_STR
    telemetry: dict[str, Any] = field(default_factory=dict)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"'{key}' must be a mapping")
    return value


def _build_config(data: Mapping[str, Any]) -> Config:
    cfg = Config()
    cfg.log = dict(_section(data, "log"))
    cfg.telemetry = dict(_section(data, "telemetry"))

    syncer = _section(data, "syncer")
    for key in ("sync_interval", "refresh_interval", "extend_lock_by"):
        if key in syncer:
            setattr(cfg.syncer, key, _duration(syncer[key]))

    service = _section(data, "service")
    if "host" in service:
        cfg.service.host = str(service["host"] or "")
    if "port" in service:
        try:
            cfg.service.port = int(service["port"])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid port {service['port']!r}") from exc
    if "http_addr" in service:
        cfg.service.http_address = str(service["http_addr"] or "")

    if data.get("pg_conn_str") is not None:
        cfg.pg_conn_str = str(data["pg_conn_str"])
    return cfg


def _config_to_dict(cfg: Config) -> dict[str, Any]:
    return {
        "log": dict(cfg.log),
        "syncer": {
            "sync_interval": _format_duration(cfg.syncer.sync_interval),
            "refresh_interval": _format_duration(cfg.syncer.refresh_interval),
            "extend_lock_by": _format_duration(cfg.syncer.extend_lock_by),
        },
        "service": {
            "host": cfg.service.host,
            "port": cfg.service.port,
            "http_addr": cfg.service.http_address,
        },
        "pg_conn_str": cfg.pg_conn_str,
        "telemetry": dict(cfg.telemetry),
    }


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from ``path`` or from ``./entropy.yaml``.

    Without a path, a missing file is logged and defaults are returned.
    Raises OSError if an explicit file cannot be read, and ValueError or
    yaml.YAMLError if its contents are not valid.
    """
    if path:
        text = Path(path).read_text(encoding="utf-8")
    else:
        candidates = [Path(".") / f"{_DEFAULT_NAME}{ext}" for ext in _DEFAULT_EXTENSIONS]
        found = next((p for p in candidates if p.is_file()), None)
        if found is None:
            _log.info('Config File "%s" Not Found in "./"', _DEFAULT_NAME)
            return Config()
        text = found.read_text(encoding="utf-8")

    data = yaml.safe_load(text)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValueError("configuration must be a mapping")
    return _build_config(data)


def main(argv: list[str] | None = None) -> int:
    """Display the configuration currently loaded."""
    parser = argparse.ArgumentParser(
        prog="entropy configs", description="Display configurations currently loaded"
    )
    parser.add_argument("-c", "--config", default="", help="Override config file")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config or None)
    except (OSError, ValueError, yaml.YAMLError) as err:
        print(f"failed to read configs: {err}")
        return 1

    yaml.safe_dump(
        _config_to_dict(cfg), sys.stdout, sort_keys=False, default_flow_style=False
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())