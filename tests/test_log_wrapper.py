import logging
from unittest.mock import Mock

import pytest

from entropy.errors import RPCError, StatusCode
from entropy.server.log_wrapper import LogWrapper

METHODS = [
    ("list_resources", "ListResources()"),
    ("get_resource", "GetResource()"),
    ("create_resource", "CreateResource()"),
    ("update_resource", "UpdateResource()"),
    ("delete_resource", "DeleteResource()"),
    ("apply_action", "ApplyAction()"),
    ("get_resource_revisions", "GetResourceRevisions()"),
]


@pytest.mark.parametrize("method,_label", METHODS)
def test_delegates_response(method, _label):
    inner = Mock()
    response = {"urn": "u"}
    getattr(inner, method).return_value = response
    request = {"urn": "u"}
    wrapper = LogWrapper(inner, logging.getLogger("test.wrapper"))
    assert getattr(wrapper, method)(request) is response
    getattr(inner, method).assert_called_once_with(request)


@pytest.mark.parametrize("method,label", METHODS)
def test_logs_and_reraises(method, label, caplog):
    inner = Mock()
    err = RPCError(StatusCode.NOT_FOUND, "not_found: requested entity not found")
    getattr(inner, method).side_effect = err
    wrapper = LogWrapper(inner, logging.getLogger("test.wrapper"))
    with caplog.at_level(logging.ERROR, logger="test.wrapper"):
        with pytest.raises(RPCError) as exc_info:
            getattr(wrapper, method)({"urn": "u"})
    assert exc_info.value is err
    assert f"{label} failed" in caplog.text


def test_get_log_passes_stream_through():
    inner = Mock()
    items = [{"chunk": {"data": b"a"}}, {"chunk": {"data": b"b"}}]
    inner.get_log.return_value = iter(items)
    wrapper = LogWrapper(inner)
    assert list(wrapper.get_log({"urn": "u"})) == items


def test_get_log_failure_logged(caplog):
    inner = Mock()
    inner.get_log.side_effect = RPCError(StatusCode.INTERNAL, "boom")
    wrapper = LogWrapper(inner, logging.getLogger("test.wrapper"))
    with caplog.at_level(logging.ERROR, logger="test.wrapper"):
        with pytest.raises(RPCError):
            wrapper.get_log({"urn": "u"})
    assert "GetLog() failed" in caplog.text


def test_no_log_on_success(caplog):
    inner = Mock()
    inner.get_resource.return_value = {}
    wrapper = LogWrapper(inner, logging.getLogger("test.wrapper"))
    with caplog.at_level(logging.ERROR, logger="test.wrapper"):
        assert wrapper.get_resource({}) == {}
    assert caplog.records == []