"""Tests for the request executors and RpcRequest."""

from __future__ import annotations

import base64
import json
from typing import Any

import httpx
import pytest

from conftest import ALICE, BOB

from autocli.client.executor import (
    ConnectExecutor,
    DryRunExecutor,
    Executor,
    RpcRequest,
    extract_response_data,
)
from autocli.exceptions import ExecutionError
from autocli.models import RequestConfig
from autocli.output import OutputManager, reset_output, set_output
from autocli.schema import SchemaRegistry
from autocli.values.message import DynamicMessage


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _send_request(registry: SchemaRegistry, signature: bytes | None = None) -> RpcRequest:
    message = DynamicMessage(registry.message("cosmos.bank.v1beta1.MsgSend"), registry)
    message.set("from_address", ALICE)
    message.set("to_address", BOB)
    return RpcRequest(
        service="cosmos.bank.v1beta1.Msg",
        method="Send",
        message=message,
        transactional=True,
        signer=ALICE,
        signature=signature,
    )


def _balance_request(registry: SchemaRegistry) -> RpcRequest:
    message = DynamicMessage(registry.message("cosmos.bank.v1beta1.QueryBalanceRequest"), registry)
    message.set("address", ALICE)
    message.set("denom", "stake")
    return RpcRequest(service="cosmos.bank.v1beta1.Query", method="Balance", message=message)


def _executor(handler) -> ConnectExecutor:
    return ConnectExecutor("http://node:1317/", transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def _clean_output():
    """Install a quiet, colourless output manager."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# RpcRequest
# ---------------------------------------------------------------------------


class TestRpcRequest:
    def test_path(self, registry: SchemaRegistry) -> None:
        assert _balance_request(registry).path == "/cosmos.bank.v1beta1.Query/Balance"

    def test_body(self, registry: SchemaRegistry) -> None:
        assert _balance_request(registry).body() == {"address": ALICE, "denom": "stake"}

    def test_sign_bytes_are_canonical(self, registry: SchemaRegistry) -> None:
        data = _send_request(registry).sign_bytes()
        assert data == json.dumps(
            {
                "message": {"from_address": ALICE, "to_address": BOB},
                "method": "/cosmos.bank.v1beta1.Msg/Send",
            },
            separators=(",", ":"),
        ).encode()

    def test_sign_bytes_ignore_signature(self, registry: SchemaRegistry) -> None:
        assert _send_request(registry).sign_bytes() == _send_request(registry, b"sig").sign_bytes()

    def test_executors_satisfy_protocol(self) -> None:
        assert isinstance(DryRunExecutor(), Executor)
        assert isinstance(ConnectExecutor("http://node"), Executor)


# ---------------------------------------------------------------------------
# ConnectExecutor
# ---------------------------------------------------------------------------


class TestConnectExecutor:
    def test_posts_json_to_method_path(self, registry: SchemaRegistry) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"balance": {"denom": "stake", "amount": "7"}})

        result = _executor(handler).execute(_balance_request(registry))

        assert result == {"balance": {"denom": "stake", "amount": "7"}}
        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert str(seen[0].url) == "http://node:1317/cosmos.bank.v1beta1.Query/Balance"
        assert json.loads(seen[0].content) == {"address": ALICE, "denom": "stake"}
        assert "x-signer" not in seen[0].headers

    def test_signature_headers(self, registry: SchemaRegistry) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"code": 0})

        _executor(handler).execute(_send_request(registry, b"\x01\x02"))

        assert seen[0].headers["x-signer"] == ALICE
        assert seen[0].headers["x-signature"] == base64.b64encode(b"\x01\x02").decode()

    def test_empty_body(self, registry: SchemaRegistry) -> None:
        result = _executor(lambda request: httpx.Response(200)).execute(_balance_request(registry))
        assert result is None

    def test_text_body(self, registry: SchemaRegistry) -> None:
        result = _executor(lambda request: httpx.Response(200, text="ok")).execute(
            _balance_request(registry)
        )
        assert result == "ok"

    def test_error_message_passed_through(self, registry: SchemaRegistry) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"code": 3, "message": "invalid address"})

        with pytest.raises(ExecutionError, match="HTTP 400: invalid address") as exc_info:
            _executor(handler).execute(_balance_request(registry))
        assert exc_info.value.exit_code == 5

    def test_error_without_message(self, registry: SchemaRegistry) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"code": 13})

        with pytest.raises(ExecutionError, match=r'HTTP 500: \{"code": 13\}'):
            _executor(handler).execute(_balance_request(registry))

    def test_transport_error(self, registry: SchemaRegistry) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExecutionError, match="/cosmos.bank.v1beta1.Query/Balance: connection refused"):
            _executor(handler).execute(_balance_request(registry))

    def test_config_accepted(self, registry: SchemaRegistry) -> None:
        executor = ConnectExecutor(
            "http://node",
            RequestConfig(timeout=5, verify_ssl=False),
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        assert executor.execute(_balance_request(registry)) == {}


# ---------------------------------------------------------------------------
# DryRunExecutor
# ---------------------------------------------------------------------------


class TestDryRunExecutor:
    def test_returns_body(self, registry: SchemaRegistry) -> None:
        assert DryRunExecutor().execute(_balance_request(registry)) == {
            "address": ALICE,
            "denom": "stake",
        }

    def test_prints_to_stderr(self, registry: SchemaRegistry, capfd: pytest.CaptureFixture[str]) -> None:
        set_output(OutputManager(no_color=True))
        DryRunExecutor().execute(_send_request(registry))
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "Dry run: /cosmos.bank.v1beta1.Msg/Send" in captured.err
        assert f"signer: {ALICE}" in captured.err

    def test_never_signs(self) -> None:
        assert DryRunExecutor.signs_transactions is False


class TestExtractResponseData:
    def _response(self, **kwargs: Any) -> httpx.Response:
        return httpx.Response(200, request=httpx.Request("POST", "http://node/x"), **kwargs)

    def test_json(self) -> None:
        assert extract_response_data(self._response(json=[1, 2])) == [1, 2]

    def test_text(self) -> None:
        assert extract_response_data(self._response(text="plain")) == "plain"

    def test_empty(self) -> None:
        assert extract_response_data(self._response()) is None
