"""Tests for autocli.values.message -- dynamic messages and JSON rendering."""

from __future__ import annotations

import pytest

from autocli.schema import SchemaRegistry
from autocli.schema import wellknown as wk
from autocli.values.message import DynamicMessage


@pytest.fixture
def breaker(registry: SchemaRegistry) -> DynamicMessage:
    return DynamicMessage(
        registry.message("cosmos.circuit.v1.MsgAuthorizeCircuitBreaker"), registry,
    )


class TestFieldAccess:
    def test_zero_values(self, breaker: DynamicMessage) -> None:
        assert breaker.get("grantee") == ""
        assert breaker.get("permissions") is None
        assert not breaker.has("grantee")

    def test_set_and_get(self, breaker: DynamicMessage) -> None:
        breaker.set("grantee", "cosmos1abc")
        assert breaker.has("grantee")
        assert breaker.fields_set() == ["grantee"]

    def test_unknown_field(self, breaker: DynamicMessage) -> None:
        with pytest.raises(KeyError, match="no field 'nope'"):
            breaker.set("nope", 1)

    def test_clear(self, breaker: DynamicMessage) -> None:
        breaker.set("grantee", "cosmos1abc")
        breaker.clear("grantee")
        assert not breaker.has("grantee")


class TestPaths:
    def test_set_path_creates_intermediate(self, breaker: DynamicMessage) -> None:
        breaker.set_path("permissions.level", 3)
        permissions = breaker.get("permissions")
        assert isinstance(permissions, DynamicMessage)
        assert permissions.type_name == "cosmos.circuit.v1.Permissions"
        assert breaker.get_path("permissions.level") == 3

    def test_second_path_reuses_intermediate(self, breaker: DynamicMessage) -> None:
        breaker.set_path("permissions.level", 3)
        breaker.set_path("permissions.limit_type_urls", ["/a"])
        assert breaker.to_dict()["permissions"] == {
            "level": "LEVEL_SUPER_ADMIN",
            "limit_type_urls": ["/a"],
        }

    def test_get_path_of_unset_parent(self, breaker: DynamicMessage) -> None:
        assert breaker.get_path("permissions.limit_type_urls") == []

    def test_cannot_traverse_scalar(self, breaker: DynamicMessage) -> None:
        with pytest.raises(TypeError, match="not a singular message"):
            breaker.set_path("grantee.x", 1)


class TestRendering:
    def test_omits_zero_values(self, breaker: DynamicMessage) -> None:
        breaker.set("grantee", "")
        assert breaker.to_dict() == {}

    def test_include_defaults(self, registry: SchemaRegistry) -> None:
        params = DynamicMessage(registry.message("cosmos.bank.v1beta1.Params"), registry)
        assert params.to_dict(include_defaults=True) == {"default_send_enabled": False}

    def test_int64_as_string(self, registry: SchemaRegistry) -> None:
        vote = DynamicMessage(registry.message("cosmos.gov.v1.MsgVote"), registry)
        vote.set("proposal_id", 7)
        vote.set("option", 1)
        assert vote.to_dict() == {"proposal_id": "7", "option": "VOTE_OPTION_YES"}

    def test_unknown_enum_number_kept(self, registry: SchemaRegistry) -> None:
        vote = DynamicMessage(registry.message("cosmos.gov.v1.MsgVote"), registry)
        vote.set("option", 42)
        assert vote.to_dict()["option"] == 42

    def test_any_gains_type_key(self, registry: SchemaRegistry) -> None:
        coin = DynamicMessage(registry.message(wk.COIN), registry, {"denom": "stake", "amount": "1"})
        proposal = DynamicMessage(registry.message(wk.MSG_SUBMIT_PROPOSAL), registry)
        proposal.set("messages", [coin])
        assert proposal.to_dict()["messages"] == [
            {"@type": "/cosmos.base.v1beta1.Coin", "denom": "stake", "amount": "1"}
        ]

    def test_duration_string_form(self, registry: SchemaRegistry) -> None:
        from autocli.models import FieldDescriptor, FieldKind, MessageDescriptor

        holder = MessageDescriptor(
            name="x.Holder",
            fields=[FieldDescriptor(name="period", kind=FieldKind.MESSAGE, type_name=wk.DURATION)],
        )
        message = DynamicMessage(holder, registry)
        message.set("period", DynamicMessage(
            registry.message(wk.DURATION), registry, {"seconds": 1, "nanos": 500_000_000},
        ))
        assert message.to_dict() == {"period": "1.500s"}


class TestCopyAndEquality:
    def test_from_dict_round_trip(self, breaker: DynamicMessage, registry: SchemaRegistry) -> None:
        breaker.set("grantee", "cosmos1abc")
        breaker.set_path("permissions.level", 2)
        rebuilt = DynamicMessage.from_dict(breaker.descriptor, registry, breaker.to_dict())
        assert rebuilt == breaker

    def test_copy_is_deep(self, breaker: DynamicMessage) -> None:
        breaker.set_path("permissions.limit_type_urls", ["/a"])
        clone = breaker.copy()
        clone.get("permissions").get("limit_type_urls").append("/b")
        assert breaker.get_path("permissions.limit_type_urls") == ["/a"]
        assert clone.registry is breaker.registry

    def test_different_types_not_equal(self, registry: SchemaRegistry) -> None:
        a = DynamicMessage(registry.message("cosmos.bank.v1beta1.QueryParamsRequest"), registry)
        b = DynamicMessage(registry.message("cosmos.bank.v1beta1.MsgUpdateParamsResponse"), registry)
        assert a != b
