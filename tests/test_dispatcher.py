from __future__ import annotations

import logging

import pytest

from rpcmount.errors import LabeledError
from rpcmount.schemas import CallMetadata, ValidatorResult
from rpcmount.server.dispatcher import RPCDispatcher
from rpcmount.server.registry import MethodRegistry
from rpcmount.server.renderers import ErrorRendererRegistry

pytestmark = pytest.mark.anyio


def make_dispatcher(validator=None) -> RPCDispatcher:
    registry = MethodRegistry()

    @registry.register()
    def add(meta, a, b):
        return a + b

    @registry.register()
    async def echo(meta, value=None):
        return value

    return RPCDispatcher(registry, ErrorRendererRegistry(), validator)


async def test_success_envelope():
    resp = await make_dispatcher().dispatch({"method": "add", "params": [2, 3]})
    assert resp.success is True
    assert resp.data == 5
    assert resp.error is None
    assert resp.status_code == 200
    assert resp.to_body() == {"success": True, "data": 5}


async def test_missing_params_is_an_empty_list():
    resp = await make_dispatcher().dispatch({"method": "echo"})
    assert resp.success is True
    assert resp.data is None
    assert resp.to_body() == {"success": True, "data": None}


@pytest.mark.parametrize("params", [None, [1], {"a": 1}, "text"])
@pytest.mark.parametrize("method", [None, "", 0, False])
async def test_missing_method_is_bad_request(method, params):
    payload = {"params": params}
    if method is not None:
        payload["method"] = method
    resp = await make_dispatcher().dispatch(payload)
    assert resp.success is False
    assert resp.status_code == 400
    assert resp.error == "method and params required"


@pytest.mark.parametrize("method", [42, ["add"], {"name": "add"}, True])
async def test_non_string_method_is_not_found(method):
    resp = await make_dispatcher().dispatch({"method": method, "params": []})
    assert resp.status_code == 404
    assert resp.error == "RPC function doesn't exist"


@pytest.mark.parametrize("params", [{"a": 1}, "1,2", 5])
async def test_params_must_be_a_list(params):
    resp = await make_dispatcher().dispatch({"method": "add", "params": params})
    assert resp.status_code == 400
    assert resp.error == "params should be a list"


async def test_unknown_method():
    resp = await make_dispatcher().dispatch({"method": "nope", "params": []})
    assert resp.success is False
    assert resp.status_code == 400
    assert "nope" in resp.error


async def test_rejected_authorization_never_calls_handler():
    calls = []
    registry = MethodRegistry()
    registry.add(lambda meta: calls.append(meta), name="spy")
    dispatcher = RPCDispatcher(registry, ErrorRendererRegistry(), lambda request: ValidatorResult.deny())

    resp = await dispatcher.dispatch({"method": "spy", "params": []})
    assert resp.status_code == 403
    assert resp.error == "authorization failed"
    assert calls == []


async def test_async_validator_context_reaches_handler():
    async def validator(request):
        return ValidatorResult.allow({"user": "alice", "level": 3})

    registry = MethodRegistry()

    @registry.register()
    def whoami(meta: CallMetadata):
        return {"auth": meta.auth, "has_request": meta.request is not None}

    dispatcher = RPCDispatcher(registry, ErrorRendererRegistry(), validator)
    resp = await dispatcher.dispatch({"method": "whoami"})
    assert resp.data == {"auth": {"user": "alice", "level": 3}, "has_request": False}


async def test_default_validator_authorizes_with_empty_context():
    registry = MethodRegistry()
    registry.add(lambda meta: meta.auth, name="claims")
    resp = await RPCDispatcher(registry, ErrorRendererRegistry()).dispatch({"method": "claims"})
    assert resp.data == {}


async def test_labeled_error_with_renderer():
    registry = MethodRegistry()
    renderers = ErrorRendererRegistry()

    @registry.register()
    def withdraw(meta, amount):
        raise LabeledError("insufficient_funds", {"balance": "10"}, status_code=409)

    renderers.add("insufficient_funds", lambda p: f"balance is only {p['balance']}")

    resp = await RPCDispatcher(registry, renderers).dispatch({"method": "withdraw", "params": [50]})
    assert resp.success is False
    assert resp.error == "balance is only 10"
    assert resp.status_code == 409


async def test_labeled_error_without_renderer_is_generic(caplog):
    registry = MethodRegistry()

    @registry.register()
    def secret(meta):
        raise LabeledError("internal_label", {"key": "hidden-value"}, status_code=418)

    with caplog.at_level(logging.ERROR, logger="rpcmount"):
        resp = await RPCDispatcher(registry, ErrorRendererRegistry()).dispatch({"method": "secret"})

    body = str(resp.to_body())
    assert resp.status_code == 500
    assert resp.error == "operation failed"
    assert "internal_label" not in body
    assert "hidden-value" not in body
    assert "internal_label" in caplog.text


async def test_unstructured_failure_is_generic_and_logged(caplog):
    registry = MethodRegistry()

    @registry.register()
    def explode(meta):
        raise RuntimeError("database password is hunter2")

    with caplog.at_level(logging.ERROR, logger="rpcmount"):
        resp = await RPCDispatcher(registry, ErrorRendererRegistry()).dispatch({"method": "explode"})

    assert resp.status_code == 500
    assert resp.error == "operation failed"
    assert "hunter2" not in str(resp.to_body())
    assert "hunter2" in caplog.text


async def test_failing_validator_is_generic_500():
    def validator(request):
        raise ConnectionError("auth backend down")

    resp = await make_dispatcher(validator).dispatch({"method": "add", "params": [1, 2]})
    assert resp.status_code == 500
    assert resp.error == "operation failed"


async def test_failing_renderer_is_generic_500():
    registry = MethodRegistry()
    renderers = ErrorRendererRegistry()

    @registry.register()
    def raises(meta):
        raise LabeledError("bad")

    renderers.add("bad", lambda p: p["missing"])

    resp = await RPCDispatcher(registry, renderers).dispatch({"method": "raises"})
    assert resp.status_code == 500
    assert resp.error == "operation failed"


async def test_overwritten_handler_is_used():
    dispatcher = make_dispatcher()
    dispatcher.registry.add(lambda meta, a, b: a * b, name="add")
    resp = await dispatcher.dispatch({"method": "add", "params": [3, 4]})
    assert resp.data == 12


async def test_ambient_info_is_passed_through_untouched():
    registry = MethodRegistry()
    registry.add(lambda meta, x: {"x": x, "request": meta.request, "response": meta.response}, name="echo")
    ambient = {"ip": "1.2.3.4"}

    resp = await RPCDispatcher(registry, ErrorRendererRegistry()).dispatch(
        {"method": "echo", "params": [5]}, ambient
    )
    assert resp.success is True
    assert resp.data == {"x": 5, "request": ambient, "response": None}


async def test_context_reaches_handler_by_reference():
    issued = []

    def validator(request):
        result = ValidatorResult.allow({"user": "erin"})
        issued.append(result.context)
        return result

    registry = MethodRegistry()
    registry.add(lambda meta: meta.auth is issued[0], name="same")

    resp = await RPCDispatcher(registry, ErrorRendererRegistry(), validator).dispatch({"method": "same"})
    assert resp.data is True


@pytest.mark.parametrize("returned", [True, None, {"authorized": True}])
async def test_validator_returning_wrong_type_is_generic_500(returned):
    resp = await make_dispatcher(lambda request: returned).dispatch({"method": "add", "params": [1, 2]})
    assert resp.status_code == 500
    assert resp.error == "operation failed"
