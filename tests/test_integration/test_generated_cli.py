"""End-to-end tests of generated commands attached to the real root application."""

from __future__ import annotations

import json

import pytest
import typer
from typer.testing import CliRunner

from conftest import ALICE, BOB, GOV, MemoryKeyring, RecordingExecutor

from autocli.app import create_app
from autocli.generator import attach_command_tree, build_command_tree
from autocli.runtime import CommandRuntime
from autocli.schema import SchemaRegistry


@pytest.fixture
def cli_app(registry: SchemaRegistry, keyring: MemoryKeyring, executor: RecordingExecutor) -> typer.Typer:
    root = create_app()
    runtime = CommandRuntime(registry, executor=executor, keyring=keyring)
    attach_command_tree(root, build_command_tree(registry), runtime)
    return root


def _invoke(runner: CliRunner, app: typer.Typer, *args: str):
    return runner.invoke(app, ["--no-color", *args])


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TestTransactions:
    def test_circuit_breaker(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app, "--quiet",
            "tx", "circuit", "authorize-circuit-breaker",
            "cosmos1abc", "super-admin", "/a.Msg,/b.Msg",
            "--from", "alice",
        )
        assert result.exit_code == 0, result.output
        assert len(executor.requests) == 1
        request = executor.requests[0]
        assert request.path == "/cosmos.circuit.v1.Msg/AuthorizeCircuitBreaker"
        assert request.signer == ALICE
        assert request.body() == {
            "granter": ALICE,
            "grantee": "cosmos1abc",
            "permissions": {"level": "LEVEL_SUPER_ADMIN", "limit_type_urls": ["/a.Msg,/b.Msg"]},
        }

    def test_empty_varargs(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app, "--quiet",
            "tx", "circuit", "authorize-circuit-breaker", "cosmos1abc", "super-admin",
            "--from", "alice",
        )
        assert result.exit_code == 0, result.output
        assert executor.requests[0].body() == {
            "granter": ALICE,
            "grantee": "cosmos1abc",
            "permissions": {"level": "LEVEL_SUPER_ADMIN"},
        }

    def test_send_with_key_names(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app, "--quiet",
            "tx", "bank", "send", "bob", "10stake", "2atom", "--from", "alice",
        )
        assert result.exit_code == 0, result.output
        assert executor.requests[0].body() == {
            "from_address": ALICE,
            "to_address": BOB,
            "amount": [{"denom": "stake", "amount": "10"}, {"denom": "atom", "amount": "2"}],
        }

    def test_governance_wrapping(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app, "--quiet",
            "tx", "bank", "update-params",
            "--from", "alice",
            "--params", '{"default_send_enabled": false}',
            "--title", "Disable sends",
            "--deposit", "100stake",
            "--expedited",
        )
        assert result.exit_code == 0, result.output
        request = executor.requests[0]
        assert request.wrapped
        assert request.path == "/cosmos.gov.v1.Msg/SubmitProposal"
        body = request.body()
        assert body["proposer"] == ALICE
        assert body["expedited"] is True
        assert body["initial_deposit"] == [{"denom": "stake", "amount": "100"}]
        assert body["messages"][0]["authority"] == GOV

    def test_no_proposal(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app, "--quiet",
            "tx", "bank", "update-params", "--from", "alice", "--no-proposal",
        )
        assert result.exit_code == 0, result.output
        request = executor.requests[0]
        assert not request.wrapped
        assert request.path == "/cosmos.bank.v1beta1.Msg/UpdateParams"
        assert request.body() == {"authority": ALICE}

    def test_response_rendered_as_json(self, cli_runner: CliRunner, cli_app: typer.Typer) -> None:
        result = _invoke(
            cli_runner, cli_app, "--quiet", "--json",
            "tx", "gov", "vote", "--from", "bob", "--proposal-id", "2", "--option", "abstain",
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"code": 0}


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_balance(self, cli_runner: CliRunner, registry: SchemaRegistry, keyring: MemoryKeyring) -> None:
        executor = RecordingExecutor({"balance": {"denom": "stake", "amount": "42"}})
        root = create_app()
        attach_command_tree(
            root, build_command_tree(registry), CommandRuntime(registry, executor=executor, keyring=keyring),
        )
        result = _invoke(cli_runner, root, "--quiet", "--json", "query", "bank", "balance", "alice", "stake")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"balance": {"denom": "stake", "amount": "42"}}
        assert executor.requests[0].body() == {"address": ALICE, "denom": "stake"}
        assert executor.requests[0].signature is None

    def test_version_gated_method_absent(self, cli_runner: CliRunner, cli_app: typer.Typer) -> None:
        result = _invoke(cli_runner, cli_app, "query", "bank", "send-enabled")
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_unknown_signer(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app, "tx", "gov", "vote", "--from", "carol", "--proposal-id", "1",
        )
        assert result.exit_code == 4
        assert "carol" in result.output
        assert executor.requests == []

    def test_bad_enum(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app,
            "tx", "gov", "vote", "--from", "alice", "--proposal-id", "1", "--option", "maybe",
        )
        assert result.exit_code == 2
        assert "invalid value for --option" in result.output
        assert executor.requests == []

    def test_bad_positional(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app, "tx", "bank", "send", "bob", "ten", "--from", "alice",
        )
        assert result.exit_code == 2
        assert "tx bank send" in result.output
        assert executor.requests == []

    def test_missing_required_flag(
        self, cli_runner: CliRunner, cli_app: typer.Typer, executor: RecordingExecutor,
    ) -> None:
        result = _invoke(cli_runner, cli_app, "tx", "gov", "vote", "--from", "alice")
        assert result.exit_code == 2
        assert executor.requests == []


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


class TestDryRun:
    def test_nothing_sent(
        self,
        cli_runner: CliRunner,
        cli_app: typer.Typer,
        executor: RecordingExecutor,
        keyring: MemoryKeyring,
    ) -> None:
        result = _invoke(
            cli_runner, cli_app, "--quiet", "--json", "--dry-run",
            "tx", "bank", "send", "bob", "10stake", "--from", "alice",
        )
        assert result.exit_code == 0, result.output
        assert executor.requests == []
        assert keyring.signed == []
        assert json.loads(result.output)["from_address"] == ALICE

    def test_reports_path(self, cli_runner: CliRunner, cli_app: typer.Typer) -> None:
        result = _invoke(
            cli_runner, cli_app, "-n", "tx", "bank", "update-params", "--from", "alice",
        )
        assert result.exit_code == 0, result.output
        assert "Dry run: /cosmos.gov.v1.Msg/SubmitProposal" in result.output
        assert "wrapped in a governance proposal" in result.output


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


class TestHelp:
    def test_tx_groups_listed(self, cli_runner: CliRunner, cli_app: typer.Typer) -> None:
        result = _invoke(cli_runner, cli_app, "tx", "--help")
        assert result.exit_code == 0
        for group in ("bank", "circuit", "gov"):
            assert group in result.output

    def test_tx_help_explains_signing(self, cli_runner: CliRunner, cli_app: typer.Typer) -> None:
        result = _invoke(cli_runner, cli_app, "tx", "--help")
        assert result.exit_code == 0
        assert "--dry-run" in result.output
        assert "keyring" in result.output

    def test_builtins_still_available(self, cli_runner: CliRunner, cli_app: typer.Typer) -> None:
        result = _invoke(cli_runner, cli_app, "--help")
        assert result.exit_code == 0
        for name in ("init", "inspect", "keys", "query", "tx"):
            assert name in result.output

    def test_proposal_flags_shown(self, cli_runner: CliRunner, cli_app: typer.Typer) -> None:
        result = _invoke(cli_runner, cli_app, "tx", "bank", "update-params", "--help")
        assert result.exit_code == 0
        assert "--no-proposal" in result.output
        assert "--deposit" in result.output
