"""File-backed keyring: a YAML or JSON key directory.

The file lists named addresses and nothing else::

    keys:
      - name: alice
        address: cosmos1...
      - name: validator
        address: cosmos1...

It lets key names stand in for addresses on the command line.  Because the
file holds no private material, :meth:`FileKeyring.sign` always raises
:class:`~autocli.exceptions.SignerError`; sign with an executor that signs
server-side, or use ``--dry-run``.

Writes are atomic: content goes to a temporary file in the same directory,
is fsynced, then renamed into place with ``0o600`` permissions.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from autocli.config import atomic_write
from autocli.exceptions import ConfigError, InvalidUsageError, SignerError
from autocli.keyring.base import KeyRecord, Keyring

logger = logging.getLogger(__name__)


class KeyringFile(BaseModel):
    """On-disk shape of a keyring file."""

    keys: list[KeyRecord] = Field(default_factory=list)


class FileKeyring(Keyring):
    """Keyring persisted as a YAML (``.yaml``/``.yml``) or JSON file.

    The file is read lazily on first use; a missing file is an empty
    keyring.

    Args:
        path: Location of the keyring file.

    Example::

        keyring = FileKeyring("~/.config/autocli/keyring.yaml")
        keyring.add("alice", "cosmos1...")
        keyring.save()
        [record.address for record in keyring.lookup("alice")]
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path).expanduser()
        self._keys: Optional[list[KeyRecord]] = None

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------ #
    # Keyring interface
    # ------------------------------------------------------------------ #

    def list_keys(self) -> list[KeyRecord]:
        return list(self._load())

    def sign(self, data: bytes, address: str) -> bytes:
        if not self.by_address(address):
            raise SignerError(f"No key in {self._path} owns address {address}")
        raise SignerError(
            f"Keyring file {self._path} holds no private keys and cannot sign; "
            "use an executor that signs on the node, or --dry-run"
        )

    # ------------------------------------------------------------------ #
    # Management
    # ------------------------------------------------------------------ #

    def add(self, name: str, address: str) -> KeyRecord:
        """Add a key.

        Raises:
            InvalidUsageError: If a key called *name* already exists.
        """
        keys = self._load()
        if any(k.name == name for k in keys):
            raise InvalidUsageError(f"Key '{name}' already exists in {self._path}")
        record = KeyRecord(name=name, address=address)
        keys.append(record)
        return record

    def delete(self, name: str) -> bool:
        """Remove every key called *name*. Returns whether anything was removed."""
        keys = self._load()
        remaining = [k for k in keys if k.name != name]
        removed = len(remaining) != len(keys)
        self._keys = remaining
        return removed

    def save(self) -> None:
        """Persist the keyring atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        data = KeyringFile(keys=self._load()).model_dump(mode="json")
        if self._path.suffix.lower() in (".yaml", ".yml"):
            text = yaml.safe_dump(data, sort_keys=False)
        else:
            text = json.dumps(data, indent=2) + "\n"

        atomic_write(self._path, text, mode=0o600)
        logger.debug("Saved %d keys to %s", len(self._load()), self._path)

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    def _load(self) -> list[KeyRecord]:
        if self._keys is not None:
            return self._keys
        if not self._path.is_file():
            self._keys = []
            return self._keys
        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
            self._keys = KeyringFile.model_validate(raw).keys
        except (OSError, yaml.YAMLError, ValidationError) as exc:
            raise ConfigError(f"Cannot read keyring file {self._path}: {exc}") from exc
        return self._keys
