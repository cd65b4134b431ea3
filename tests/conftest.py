"""Shared test fixtures for autocli.

Provides reusable fixtures for loading the schema fixture, building
registries and command trees, in-memory keyrings and executors, isolated
config environments, managing output state, and running CLI commands.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Iterable

import pytest
import yaml

from autocli.client.executor import RpcRequest
from autocli.exceptions import SignerError
from autocli.keyring.base import KeyRecord, Keyring
from autocli.models import SchemaDocument
from autocli.output import OutputFormat, OutputManager, reset_output, set_output
from autocli.schema import SchemaRegistry, parse_schema_document
from autocli.signer import AddressCodec


FIXTURES_DIR = Path(__file__).parent / "fixtures"

ALICE = AddressCodec().encode(bytes([1] * 20))
BOB = AddressCodec().encode(bytes([2] * 20))
GOV = AddressCodec().module_address("gov")


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Schema fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def chain_raw() -> dict[str, Any]:
    """Raw chain schema document loaded from the YAML fixture."""
    with open(FIXTURES_DIR / "chain.yaml", encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def chain_document(chain_raw: dict[str, Any]) -> SchemaDocument:
    return parse_schema_document(chain_raw)


@pytest.fixture
def registry(chain_document: SchemaDocument) -> SchemaRegistry:
    """Registry over the chain fixture (bank, circuit and gov services)."""
    return SchemaRegistry(chain_document)


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    """A copy of the chain fixture in a temporary directory."""
    path = tmp_path / "chain.yaml"
    path.write_text((FIXTURES_DIR / "chain.yaml").read_text(encoding="utf-8"))
    return path


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class MemoryKeyring(Keyring):
    """In-memory keyring that signs with a SHA-256 digest of the data."""

    def __init__(self, keys: Iterable[tuple[str, str]]) -> None:
        self._keys = [KeyRecord(name=name, address=address) for name, address in keys]
        self.signed: list[tuple[bytes, str]] = []

    def list_keys(self) -> list[KeyRecord]:
        return list(self._keys)

    def sign(self, data: bytes, address: str) -> bytes:
        if not self.by_address(address):
            raise SignerError(f"No key owns {address}")
        self.signed.append((data, address))
        return hashlib.sha256(data).digest()


class RecordingExecutor:
    """Executor that records every request and returns a canned response."""

    signs_transactions = True

    def __init__(self, response: Any = None) -> None:
        self.response = {"code": 0} if response is None else response
        self.requests: list[RpcRequest] = []

    def execute(self, request: RpcRequest) -> Any:
        self.requests.append(request)
        return self.response


@pytest.fixture
def keyring() -> MemoryKeyring:
    """Keyring holding ``alice`` and ``bob``."""
    return MemoryKeyring([("alice", ALICE), ("bob", BOB)])


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, clears all AUTOCLI_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("autocli.config._is_xdg_platform", lambda: True)

    for var in ["AUTOCLI_PROFILE", "AUTOCLI_ENDPOINT", "AUTOCLI_KEYRING"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
