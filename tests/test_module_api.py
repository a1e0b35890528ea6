from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from entropy.core.module.module import Module
from entropy.errors import ConflictError, InvalidError, NotFoundError, RPCError, StatusCode
from entropy.server.module_api import ModuleAPIServer, module_from_proto, module_to_proto

URN = "orn:entropy:module:proj:firehose"


def _module(configs=b'{"replicas":"10"}'):
    now = datetime.now(timezone.utc)
    return Module(
        urn=URN, name="firehose", project="proj", configs=configs,
        created_at=now, updated_at=now,
    )


def test_module_round_trip():
    mod = _module()
    assert module_from_proto(module_to_proto(mod)) == mod


def test_module_to_proto_empty_configs():
    assert module_to_proto(_module(configs=None))["configs"] is None


def test_module_from_proto_requires_configs():
    with pytest.raises(InvalidError) as exc_info:
        module_from_proto({"name": "firehose", "project": "proj"})
    assert exc_info.value.msg == "'configs' field must be specified and must be valid JSON"


def test_list_modules_empty():
    svc = Mock()
    svc.list_modules.return_value = []
    assert ModuleAPIServer(svc).list_modules({"project": "proj"}) == {"modules": []}
    svc.list_modules.assert_called_once_with("proj")


def test_list_modules_bad_stored_configs():
    svc = Mock()
    svc.list_modules.return_value = [_module(configs=b"{oops")]
    with pytest.raises(RPCError) as exc_info:
        ModuleAPIServer(svc).list_modules({})
    assert exc_info.value.code == StatusCode.INTERNAL


def test_get_module_success():
    mod = _module()
    svc = Mock()
    svc.get_module.return_value = mod
    got = ModuleAPIServer(svc).get_module({"urn": URN})
    assert got["module"]["urn"] == URN
    assert got["module"]["configs"] == {"replicas": "10"}


def test_get_module_not_found():
    svc = Mock()
    svc.get_module.side_effect = NotFoundError()
    with pytest.raises(RPCError) as exc_info:
        ModuleAPIServer(svc).get_module({"urn": URN})
    assert exc_info.value == RPCError(
        StatusCode.NOT_FOUND, "not_found: requested entity not found"
    )


def test_create_module_success():
    svc = Mock()
    svc.create_module.side_effect = lambda m: m
    request = {"module": {"name": "firehose", "project": "proj", "configs": {"a": 1}}}
    got = ModuleAPIServer(svc).create_module(request)
    assert got["module"]["configs"] == {"a": 1}
    assert svc.create_module.call_args.args[0].configs == b'{"a":1}'


def test_create_module_missing_configs():
    svc = Mock()
    with pytest.raises(RPCError) as exc_info:
        ModuleAPIServer(svc).create_module({"module": {"name": "firehose"}})
    assert exc_info.value == RPCError(
        StatusCode.INVALID_ARGUMENT,
        "bad_request: 'configs' field must be specified and must be valid JSON",
    )
    svc.create_module.assert_not_called()


def test_create_module_conflict():
    svc = Mock()
    svc.create_module.side_effect = ConflictError()
    request = {"module": {"name": "firehose", "project": "proj", "configs": {}}}
    with pytest.raises(RPCError) as exc_info:
        ModuleAPIServer(svc).create_module(request)
    assert exc_info.value.code == StatusCode.ALREADY_EXISTS


def test_update_module_success():
    svc = Mock()
    svc.update_module.return_value = _module(configs=b'{"b":2}')
    got = ModuleAPIServer(svc).update_module({"urn": URN, "configs": {"b": 2}})
    assert got["module"]["configs"] == {"b": 2}
    svc.update_module.assert_called_once_with(URN, b'{"b":2}')


def test_update_module_not_found():
    svc = Mock()
    svc.update_module.side_effect = NotFoundError()
    with pytest.raises(RPCError) as exc_info:
        ModuleAPIServer(svc).update_module({"urn": URN, "configs": {}})
    assert exc_info.value.code == StatusCode.NOT_FOUND


def test_delete_module():
    svc = Mock()
    svc.delete_module.return_value = None
    assert ModuleAPIServer(svc).delete_module({"urn": URN}) == {}
    svc.delete_module.assert_called_once_with(URN)


def test_delete_module_error():
    svc = Mock()
    svc.delete_module.side_effect = RuntimeError("failed")
    with pytest.raises(RPCError) as exc_info:
        ModuleAPIServer(svc).delete_module({"urn": URN})
    assert exc_info.value == RPCError(
        StatusCode.INTERNAL, "internal_error: some unexpected error occurred: failed"
    )