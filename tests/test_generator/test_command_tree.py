"""Tests for autocli.generator.command_tree -- build, merge and attach."""

from __future__ import annotations

from typing import Any

import pytest
import typer
from typer.testing import CliRunner

from conftest import ALICE, MemoryKeyring, RecordingExecutor

from autocli.exceptions import ConfigurationError
from autocli.generator import (
    CommandNode,
    CommandTreeBuilder,
    attach_command_tree,
    build_command_tree,
    describe_typer,
    merge_trees,
)
from autocli.models import ServiceKind
from autocli.runtime import CommandRuntime
from autocli.schema import SchemaRegistry, parse_schema_document


def _registry_with_modules(chain_raw: dict[str, Any], modules: dict[str, Any]) -> SchemaRegistry:
    raw = dict(chain_raw)
    raw["modules"] = modules
    return SchemaRegistry(parse_schema_document(raw))


def _leaf(name: str, **kwargs: Any) -> CommandNode:
    return CommandNode(name=name, is_group=False, **kwargs)


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


class TestBuildCommandTree:
    def test_roots(self, registry: SchemaRegistry) -> None:
        tree = build_command_tree(registry)
        assert set(tree.children) == {"query", "tx"}
        assert set(tree.children["tx"].children) == {"bank", "circuit", "gov"}
        assert set(tree.children["query"].children) == {"bank"}

    def test_leaves(self, registry: SchemaRegistry) -> None:
        tree = build_command_tree(registry)
        assert set(tree.find("query", "bank").children) == {"balance", "params"}
        assert set(tree.find("tx", "gov").children) == {"vote", "submit-proposal"}
        leaf = tree.find("tx", "circuit", "authorize-circuit-breaker")
        assert leaf.command.path == ("tx", "circuit", "authorize-circuit-breaker")
        assert leaf.command.display_name == "tx circuit authorize-circuit-breaker"

    def test_version_gate_uses_registry_version(self, registry: SchemaRegistry) -> None:
        assert build_command_tree(registry).find("query", "bank", "send-enabled") is None
        newer = build_command_tree(registry, app_version="0.53.0")
        assert newer.find("query", "bank", "send-enabled") is not None

    def test_aliases_are_hidden_leaves(self, registry: SchemaRegistry) -> None:
        bank = build_command_tree(registry).find("tx", "bank")
        alias = bank.children["transfer"]
        assert alias.hidden
        assert alias.command is bank.children["send"].command

    def test_commands_excludes_aliases(self, registry: SchemaRegistry) -> None:
        names = sorted(c.name for c in build_command_tree(registry).commands())
        assert names == [
            "authorize-circuit-breaker", "balance", "params",
            "send", "submit-proposal", "update-params", "vote",
        ]

    def test_group_help(self, registry: SchemaRegistry) -> None:
        tree = build_command_tree(registry)
        assert tree.find("tx", "circuit").help == "Circuit."
        assert tree.children["query"].help.startswith("Query commands")

    def test_default_group_help_from_service(self, chain_raw: dict[str, Any]) -> None:
        registry = _registry_with_modules(chain_raw, {})
        assert build_command_tree(registry).find("query", "bank").help == (
            "Query defines the gRPC querier service of the bank module."
        )


class TestModuleOptions:
    def test_defaults_fill_uncovered_services(self, registry: SchemaRegistry) -> None:
        modules = CommandTreeBuilder(registry).module_options()
        assert modules["gov"].tx.service == "cosmos.gov.v1.Msg"
        assert modules["gov"].query is None
        assert modules["bank"].tx.rpc_command_options[0].rpc_method == "Send"

    def test_sub_commands(self, chain_raw: dict[str, Any]) -> None:
        registry = _registry_with_modules(chain_raw, {
            "ops": {"tx": {"sub_commands": {
                "breaker": {"service": "cosmos.circuit.v1.Msg", "short": "Circuit breaker."},
            }}},
        })
        tree = build_command_tree(registry)
        assert tree.find("tx", "ops", "breaker", "authorize-circuit-breaker") is not None
        assert tree.find("tx", "circuit") is None

    def test_empty_module_is_dropped(self, chain_raw: dict[str, Any]) -> None:
        registry = _registry_with_modules(chain_raw, {
            "circuit": {"tx": {
                "service": "cosmos.circuit.v1.Msg",
                "rpc_command_options": [{"rpc_method": "AuthorizeCircuitBreaker", "skip": True}],
            }},
        })
        assert build_command_tree(registry).find("tx", "circuit") is None


class TestConfigurationErrors:
    BAD = {
        "circuit": {"tx": {
            "service": "cosmos.circuit.v1.Msg",
            "rpc_command_options": [{
                "rpc_method": "AuthorizeCircuitBreaker",
                "positional_args": [{"proto_field": "permissions.nope"}],
            }],
        }},
    }

    def test_strict_raises(self, chain_raw: dict[str, Any]) -> None:
        registry = _registry_with_modules(chain_raw, self.BAD)
        with pytest.raises(ConfigurationError, match="permissions.nope"):
            build_command_tree(registry)

    def test_lenient_omits_only_the_bad_command(self, chain_raw: dict[str, Any]) -> None:
        registry = _registry_with_modules(chain_raw, self.BAD)
        tree = build_command_tree(registry, strict=False)
        assert tree.find("tx", "circuit") is None
        assert tree.find("tx", "bank", "send") is not None

    def test_unknown_method_options(self, chain_raw: dict[str, Any]) -> None:
        registry = _registry_with_modules(chain_raw, {
            "circuit": {"tx": {
                "service": "cosmos.circuit.v1.Msg",
                "rpc_command_options": [{"rpc_method": "Trip"}],
            }},
        })
        with pytest.raises(ConfigurationError, match="unknown method 'Trip'"):
            build_command_tree(registry)

    def test_unknown_service(self, chain_raw: dict[str, Any]) -> None:
        registry = _registry_with_modules(chain_raw, {
            "ghost": {"query": {"service": "cosmos.ghost.v1.Query"}},
        })
        with pytest.raises(ConfigurationError, match="unknown service"):
            build_command_tree(registry)

    def test_alias_collision(self, chain_raw: dict[str, Any]) -> None:
        registry = _registry_with_modules(chain_raw, {
            "bank": {"tx": {
                "service": "cosmos.bank.v1beta1.Msg",
                "rpc_command_options": [{"rpc_method": "Send", "alias": ["update-params"]}],
            }},
        })
        with pytest.raises(ConfigurationError, match="collides"):
            build_command_tree(registry)

    def test_builder_single_kind(self, registry: SchemaRegistry) -> None:
        root = CommandTreeBuilder(registry).build_modules(ServiceKind.QUERY)
        assert root.name == "query"
        assert set(root.children) == {"bank"}


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


class TestMergeTrees:
    def test_free_paths_added(self) -> None:
        existing = CommandNode(name="app", children={"status": _leaf("status", source=object())})
        generated = CommandNode(name="app", children={"tx": CommandNode(name="tx")})
        merged = merge_trees(existing, generated)
        assert set(merged.children) == {"status", "tx"}

    def test_existing_command_kept(self) -> None:
        custom = _leaf("tx", source=object())
        existing = CommandNode(name="app", children={"tx": custom})
        generated = CommandNode(name="app", children={"tx": CommandNode(name="tx")})
        assert merge_trees(existing, generated).children["tx"] is custom

    def test_existing_group_kept_without_enhance(self) -> None:
        custom = CommandNode(name="query", source=object(), children={"mine": _leaf("mine")})
        generated = CommandNode(name="app", children={
            "query": CommandNode(name="query", children={"bank": CommandNode(name="bank")}),
        })
        merged = merge_trees(CommandNode(name="app", children={"query": custom}), generated)
        assert set(merged.children["query"].children) == {"mine"}

    def test_enhance_merges_children(self) -> None:
        custom = CommandNode(name="query", source=object(), children={"mine": _leaf("mine")})
        generated = CommandNode(name="app", children={
            "query": CommandNode(
                name="query", enhance=True,
                children={"bank": CommandNode(name="bank"), "mine": _leaf("mine")},
            ),
        })
        merged = merge_trees(CommandNode(name="app", children={"query": custom}), generated)
        query = merged.children["query"]
        assert set(query.children) == {"mine", "bank"}
        assert query.children["mine"] is custom.children["mine"]
        assert query.is_custom

    def test_enhanced_leaf_added_to_plain_group(self) -> None:
        custom = CommandNode(name="tx", source=object())
        generated = CommandNode(name="app", children={
            "tx": CommandNode(name="tx", children={
                "send": _leaf("send", enhance=True),
                "vote": _leaf("vote"),
            }),
        })
        merged = merge_trees(CommandNode(name="app", children={"tx": custom}), generated)
        assert set(merged.children["tx"].children) == {"send"}

    def test_inputs_not_modified(self) -> None:
        existing = CommandNode(name="app")
        generated = CommandNode(name="app", children={"tx": CommandNode(name="tx")})
        merge_trees(existing, generated)
        assert existing.children == {}


# ---------------------------------------------------------------------------
# Typer integration
# ---------------------------------------------------------------------------


def _host_app() -> typer.Typer:
    app = typer.Typer(name="host")

    @app.callback()
    def main() -> None:
        """Host application."""

    @app.command()
    def show_status() -> None:
        typer.echo("status ok")

    query = typer.Typer()

    @query.command("custom")
    def custom() -> None:
        typer.echo("custom query")

    app.add_typer(query, name="query")
    return app


@pytest.fixture
def runtime(registry: SchemaRegistry, keyring: MemoryKeyring, executor: RecordingExecutor) -> CommandRuntime:
    return CommandRuntime(registry, executor=executor, keyring=keyring, render=lambda data: None)


class TestDescribeTyper:
    def test_describes_commands_and_groups(self) -> None:
        node = describe_typer(_host_app())
        assert node.name == "host"
        assert set(node.children) == {"show-status", "query"}
        assert not node.children["show-status"].is_group
        assert set(node.children["query"].children) == {"custom"}
        assert node.children["query"].is_custom


class TestAttachCommandTree:
    def test_generated_commands_attached(
        self, registry: SchemaRegistry, runtime: CommandRuntime, executor: RecordingExecutor,
    ) -> None:
        app = _host_app()
        attach_command_tree(app, build_command_tree(registry), runtime)

        result = CliRunner().invoke(app, [
            "tx", "circuit", "authorize-circuit-breaker",
            "cosmos1abc", "super-admin", "/a.Msg,/b.Msg", "--from", "alice",
        ])
        assert result.exit_code == 0, result.output
        request = executor.requests[0]
        assert request.path == "/cosmos.circuit.v1.Msg/AuthorizeCircuitBreaker"
        assert request.body() == {
            "granter": ALICE,
            "grantee": "cosmos1abc",
            "permissions": {"level": "LEVEL_SUPER_ADMIN", "limit_type_urls": ["/a.Msg,/b.Msg"]},
        }

    def test_existing_commands_untouched(self, registry: SchemaRegistry, runtime: CommandRuntime) -> None:
        app = _host_app()
        merged = attach_command_tree(app, build_command_tree(registry), runtime)
        runner = CliRunner()

        assert runner.invoke(app, ["query", "custom"]).output.strip() == "custom query"
        assert runner.invoke(app, ["show-status"]).output.strip() == "status ok"
        assert merged.find("query", "bank") is None
        assert runner.invoke(app, ["query", "bank", "balance"]).exit_code != 0

    def test_enhanced_group_gets_generated_children(
        self, registry: SchemaRegistry, runtime: CommandRuntime, executor: RecordingExecutor,
    ) -> None:
        app = _host_app()
        tree = build_command_tree(registry)
        tree.children["query"].enhance = True
        attach_command_tree(app, tree, runtime)

        runner = CliRunner()
        assert runner.invoke(app, ["query", "custom"]).output.strip() == "custom query"
        result = runner.invoke(app, ["query", "bank", "balance", ALICE, "stake"])
        assert result.exit_code == 0, result.output
        assert executor.requests[0].body() == {"address": ALICE, "denom": "stake"}

    def test_alias_invokes_same_method(
        self, registry: SchemaRegistry, runtime: CommandRuntime, executor: RecordingExecutor,
    ) -> None:
        app = _host_app()
        attach_command_tree(app, build_command_tree(registry), runtime)
        result = CliRunner().invoke(app, ["tx", "bank", "transfer", ALICE, "10stake", "--from", "bob"])
        assert result.exit_code == 0, result.output
        assert executor.requests[0].path == "/cosmos.bank.v1beta1.Msg/Send"

    def test_help_lists_flags(self, registry: SchemaRegistry, runtime: CommandRuntime) -> None:
        app = _host_app()
        attach_command_tree(app, build_command_tree(registry), runtime)
        result = CliRunner().invoke(app, ["tx", "gov", "vote", "--help"])
        assert result.exit_code == 0
        for flag in ("--from", "--proposal-id", "--option", "--metadata"):
            assert flag in result.output

    def test_alias_hidden_from_group_help(self, registry: SchemaRegistry, runtime: CommandRuntime) -> None:
        app = _host_app()
        attach_command_tree(app, build_command_tree(registry), runtime)
        result = CliRunner().invoke(app, ["tx", "bank", "--help"])
        assert "send" in result.output
        assert "transfer" not in result.output
