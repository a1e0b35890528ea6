"""Output formatters for command results: JSON, YAML, TOML and plain text."""

from __future__ import annotations

import base64
import dataclasses
import enum
import json
import sys
from collections.abc import Callable, Mapping
from datetime import date, datetime, time, timedelta
from typing import Any, TextIO

import tomli_w
import yaml

FormatFn = Callable[[TextIO, Any], None]


def _to_plain(value: Any) -> Any:
    """Reduce a value to JSON-compatible data: dicts, lists and scalars."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _to_plain(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if not f.name.startswith("_")
        }
    if isinstance(value, enum.Enum):
        return _to_plain(value.value)
    if isinstance(value, Mapping):
        return {str(k): _to_plain(v) for k, v in value.items()}
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_plain(v) for v in value]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    return value


def _drop_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_nulls(v) for v in value if v is not None]
    return value


def json_format(stream: TextIO, value: Any) -> None:
    """Write ``value`` as indented JSON followed by a newline."""
    json.dump(_to_plain(value), stream, indent=2, ensure_ascii=False)
    stream.write("\n")


def yaml_format(stream: TextIO, value: Any) -> None:
    """Write ``value`` as a YAML document."""
    yaml.safe_dump(
        _to_plain(value),
        stream,
        default_flow_style=False,
        sort_keys=True,
        allow_unicode=True,
    )


def toml_format(stream: TextIO, value: Any) -> None:
    """Write ``value`` as a TOML document.

    Raises ValueError if the value is not a table at the top level.
    """
    data = _drop_nulls(_to_plain(value))
    if not isinstance(data, dict):
        raise ValueError("toml: top-level value must be a table")
    stream.write(tomli_w.dumps(data))


def plain_format(stream: TextIO, value: Any) -> None:
    """Write the default text representation of ``value``."""
    print(value, file=stream)


_FORMATTERS: dict[str, FormatFn] = {
    "json": json_format,
    "yaml": yaml_format,
    "yml": yaml_format,
    "toml": toml_format,
}


def display(
    value: Any,
    fmt: str = "pretty",
    pretty_formatter: FormatFn | None = None,
    stream: TextIO | None = None,
) -> None:
    """Write ``value`` in the named format.

    For ``pretty`` or ``human`` the given formatter is used, falling back to
    plain text. Raises ValueError for an unknown format name.
    """
    name = fmt.strip().lower()
    if name in ("pretty", "human"):
        formatter = pretty_formatter or plain_format
    else:
        found = _FORMATTERS.get(name)
        if found is None:
            raise ValueError(f"--format value '{name}' is not valid")
        formatter = found
    formatter(stream if stream is not None else sys.stdout, value)