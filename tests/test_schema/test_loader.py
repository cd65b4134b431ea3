"""Tests for autocli.schema.loader -- sources, format detection, validation."""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from autocli.exceptions import SchemaParseError
from autocli.models import ServiceKind
from autocli.schema.loader import load_schema, load_schema_document, parse_schema_document
from autocli.schema.registry import SchemaRegistry
from autocli.values.coerce import ValueCoercer, value_hint
from autocli.values.message import DynamicMessage


MINIMAL: dict[str, Any] = {
    "messages": [
        {"name": "demo.v1.PingRequest"},
        {"name": "demo.v1.PingResponse"},
    ],
    "services": [
        {
            "name": "demo.v1.Query",
            "methods": [
                {
                    "name": "Ping",
                    "input_type": "demo.v1.PingRequest",
                    "output_type": "demo.v1.PingResponse",
                }
            ],
        }
    ],
}


class TestLoadFromFile:
    def test_yaml_file(self, schema_file: Path) -> None:
        raw = load_schema(str(schema_file))
        assert raw["app_version"] == "0.50.0"
        assert any(s["name"] == "cosmos.circuit.v1.Msg" for s in raw["services"])

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(MINIMAL))
        assert load_schema(str(path)) == MINIMAL

    def test_json_content_without_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "schema"
        path.write_text(json.dumps(MINIMAL))
        assert load_schema(str(path))["services"][0]["name"] == "demo.v1.Query"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SchemaParseError, match="not found"):
            load_schema(str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("   \n")
        with pytest.raises(SchemaParseError, match="empty"):
            load_schema(str(path))

    def test_invalid_json_with_json_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SchemaParseError, match="Invalid JSON"):
            load_schema(str(path))

    def test_top_level_must_be_object(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(SchemaParseError, match="object"):
            load_schema(str(path))


class TestLoadFromStdin:
    def test_reads_stdin(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(MINIMAL)))
        assert load_schema("-") == MINIMAL

    def test_empty_stdin(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        with pytest.raises(SchemaParseError, match="stdin"):
            load_schema("-")


class TestLoadFromUrl:
    def test_fetches_yaml(self) -> None:
        response = MagicMock()
        response.text = "services: []\n"
        response.headers = {"content-type": "application/yaml"}
        response.raise_for_status.return_value = None

        with patch("autocli.schema.loader.httpx.get", return_value=response) as get:
            raw = load_schema("https://example.com/schema.yaml")

        assert raw == {"services": []}
        get.assert_called_once()

    def test_connection_error(self) -> None:
        error = httpx.ConnectError("connection refused")
        with patch("autocli.schema.loader.httpx.get", side_effect=error):
            with pytest.raises(SchemaParseError, match="Failed to fetch"):
                load_schema("https://example.com/schema.yaml")


class TestParseDocument:
    def test_valid_document(self) -> None:
        document = parse_schema_document(MINIMAL)
        assert document.services[0].kind == ServiceKind.QUERY
        assert document.services[0].methods[0].name == "Ping"

    def test_invalid_field_kind(self) -> None:
        raw = {"messages": [{"name": "x.M", "fields": [{"name": "a", "kind": "complex"}]}]}
        with pytest.raises(SchemaParseError, match="Invalid schema document"):
            parse_schema_document(raw)

    def test_load_schema_document(self, schema_file: Path) -> None:
        document = load_schema_document(str(schema_file))
        assert "circuit" in document.modules
        assert document.app_version == "0.50.0"


class TestLeadingDotReferences:
    """protoc emits fully-qualified references with a leading dot."""

    @pytest.fixture
    def dotted_registry(self, chain_raw: dict[str, Any]) -> SchemaRegistry:
        for message in chain_raw["messages"]:
            for fd in message.get("fields", []):
                if fd.get("type_name"):
                    fd["type_name"] = "." + fd["type_name"]
        for service in chain_raw["services"]:
            for method in service["methods"]:
                method["input_type"] = "." + method["input_type"]
        return SchemaRegistry(parse_schema_document(chain_raw))

    def test_references_are_stripped(self, dotted_registry: SchemaRegistry) -> None:
        send = dotted_registry.message("cosmos.bank.v1beta1.MsgSend")
        assert send.field("amount").type_name == "cosmos.base.v1beta1.Coin"
        method = dotted_registry.method("cosmos.bank.v1beta1.Msg", "Send")
        assert method.input_type == "cosmos.bank.v1beta1.MsgSend"

    def test_coins_still_split(self, dotted_registry: SchemaRegistry) -> None:
        amount = dotted_registry.message("cosmos.bank.v1beta1.MsgSend").field("amount")
        coins = ValueCoercer(dotted_registry).coerce(["10stake,2atom"], amount)
        assert [c.to_dict() for c in coins] == [
            {"denom": "stake", "amount": "10"},
            {"denom": "atom", "amount": "2"},
        ]
        assert value_hint(amount, dotted_registry) == "list of coin, e.g. 10stake"

    def test_any_field_renders_type_url(self) -> None:
        raw = {
            "messages": [
                {"name": "x.Inner", "fields": [{"name": "n", "kind": "string"}]},
                {"name": "x.Outer", "fields": [
                    {"name": "payload", "kind": "message", "type_name": ".google.protobuf.Any"},
                ]},
            ],
        }
        registry = SchemaRegistry(parse_schema_document(raw))
        outer = DynamicMessage(registry.message("x.Outer"), registry)
        outer.set("payload", DynamicMessage(registry.message("x.Inner"), registry, {"n": "v"}))
        assert outer.to_dict() == {"payload": {"@type": "/x.Inner", "n": "v"}}
