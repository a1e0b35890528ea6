import io
import json
from datetime import datetime, timezone

import pytest
import yaml

from entropy.cli.display import (
    display,
    json_format,
    plain_format,
    toml_format,
    yaml_format,
)
from entropy.core.resource import Resource, State, Status


def test_json_format_round_trip_and_indent():
    value = {"urn": "orn:entropy:log:p:n", "count": 3, "items": [1, 2]}
    buf = io.StringIO()
    json_format(buf, value)
    out = buf.getvalue()
    assert json.loads(out) == value
    assert out.endswith("\n")
    assert '\n  "urn"' in out


def test_json_format_handles_dataclasses_and_enums():
    res = Resource(urn="u", kind="log", state=State(status=Status.PENDING))
    buf = io.StringIO()
    json_format(buf, res)
    data = json.loads(buf.getvalue())
    assert data["urn"] == "u"
    assert data["state"]["status"] == "STATUS_PENDING"
    assert data["created_at"] is None


def test_json_format_datetime_iso():
    moment = datetime(2022, 4, 21, tzinfo=timezone.utc)
    buf = io.StringIO()
    json_format(buf, {"at": moment})
    data = json.loads(buf.getvalue())
    assert datetime.fromisoformat(data["at"]) == moment


def test_yaml_format_round_trip():
    value = {"kind": "log", "labels": {"a": "b"}, "n": 2}
    buf = io.StringIO()
    yaml_format(buf, value)
    assert yaml.safe_load(buf.getvalue()) == value


def test_yaml_format_sorts_keys():
    buf = io.StringIO()
    yaml_format(buf, {"zeta": 1, "alpha": 2})
    out = buf.getvalue()
    assert out.index("alpha") < out.index("zeta")


def test_toml_format_writes_table():
    buf = io.StringIO()
    toml_format(buf, {"kind": "log", "skip": None})
    out = buf.getvalue()
    assert 'kind = "log"' in out
    assert "skip" not in out


def test_toml_format_rejects_non_table():
    with pytest.raises(ValueError):
        toml_format(io.StringIO(), [1, 2, 3])


def test_plain_format_uses_str():
    buf = io.StringIO()
    plain_format(buf, 42)
    assert buf.getvalue() == "42\n"


def test_display_json_case_and_whitespace_insensitive():
    buf = io.StringIO()
    display({"a": 1}, " JSON ", None, buf)
    assert json.loads(buf.getvalue()) == {"a": 1}


@pytest.mark.parametrize("fmt", ["yaml", "yml"])
def test_display_yaml_aliases(fmt):
    buf = io.StringIO()
    display({"a": 1}, fmt, None, buf)
    assert yaml.safe_load(buf.getvalue()) == {"a": 1}


@pytest.mark.parametrize("fmt", ["pretty", "human"])
def test_display_pretty_uses_custom_formatter(fmt):
    seen = []

    def pretty(stream, value):
        seen.append(value)
        stream.write("custom")

    buf = io.StringIO()
    display("v", fmt, pretty, buf)
    assert buf.getvalue() == "custom"
    assert seen == ["v"]


def test_display_pretty_falls_back_to_plain():
    buf = io.StringIO()
    display("hello", "pretty", None, buf)
    assert buf.getvalue() == "hello\n"


def test_display_rejects_unknown_format():
    with pytest.raises(ValueError, match="--format value 'xml' is not valid"):
        display({}, "xml", None, io.StringIO())