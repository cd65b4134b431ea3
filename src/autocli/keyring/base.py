"""Abstract key-management collaborator.

A keyring answers two questions for the runtime:

* :meth:`Keyring.lookup` -- which keys carry a given name (zero, one, or
  several; the caller decides what ambiguity means), and
* :meth:`Keyring.sign` -- produce a signature over bytes with the key that
  owns an address.

Private key material never passes through autocli; implementations that
cannot sign raise :class:`~autocli.exceptions.SignerError`.

See Also:
    :mod:`autocli.signer` for signer resolution built on top of this.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class KeyRecord(BaseModel):
    """A named key and the account address it controls."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Local name of the key")
    address: str = Field(description="Bech32 account address of the key")


class Keyring(ABC):
    """Abstract base class for keyrings.

    Subclasses implement :meth:`list_keys` and :meth:`sign`; the default
    :meth:`lookup` matches names exactly, and falls back to a
    case-insensitive match when there is no exact one.
    """

    @abstractmethod
    def list_keys(self) -> list[KeyRecord]:
        """Return every key in the keyring, in storage order."""
        ...

    @abstractmethod
    def sign(self, data: bytes, address: str) -> bytes:
        """Sign *data* with the key that owns *address*.

        Raises:
            SignerError: If no key owns *address* or the keyring cannot sign.
        """
        ...

    def lookup(self, name: str) -> list[KeyRecord]:
        """Return all keys called *name*.

        Returns:
            The exact matches, or when there are none, the matches ignoring
            case.  An empty list means the name is unknown.
        """
        keys = self.list_keys()
        exact = [k for k in keys if k.name == name]
        if exact:
            return exact
        folded = name.casefold()
        return [k for k in keys if k.name.casefold() == folded]

    def by_address(self, address: str) -> list[KeyRecord]:
        return [k for k in self.list_keys() if k.address == address]
