"""Signer resolution -- turn the ``--from`` value into the signing address.

A transactional request has exactly one signer field.  The value given for
it on the command line is either

* a literal bech32 address (checked with :mod:`bech32`, human-readable part
  matching the configured prefix), used as is, or
* the name of a key, looked up in the keyring: no match is
  :class:`~autocli.exceptions.SignerNotFoundError`, several matches are
  :class:`~autocli.exceptions.AmbiguousSignerError`.

Without a keyring, transactional commands fail with
:class:`~autocli.exceptions.NoKeyringError`; queries never consult it.
"""

from __future__ import annotations

import hashlib
from typing import Optional

import bech32

from autocli.exceptions import (
    AmbiguousSignerError,
    NoKeyringError,
    SignerError,
    SignerNotFoundError,
)
from autocli.keyring.base import Keyring
from autocli.values.message import DynamicMessage


class AddressCodec:
    """Bech32 address checks and encoding for one chain prefix.

    Args:
        prefix: Human-readable part of account addresses (``cosmos``).
            Addresses whose prefix extends it (``cosmosvaloper``) are
            accepted too.
    """

    def __init__(self, prefix: str = "cosmos") -> None:
        self.prefix = prefix

    def is_address(self, text: str) -> bool:
        hrp, data = bech32.bech32_decode(text)
        if hrp is None or data is None:
            return False
        return hrp.startswith(self.prefix)

    def encode(self, raw: bytes, hrp: Optional[str] = None) -> str:
        words = bech32.convertbits(raw, 8, 5)
        if words is None:
            raise ValueError("cannot convert address bytes to bech32 words")
        return bech32.bech32_encode(hrp or self.prefix, words)

    def decode(self, text: str) -> bytes:
        hrp, data = bech32.bech32_decode(text)
        if hrp is None or data is None:
            raise ValueError(f"'{text}' is not a bech32 address")
        raw = bech32.convertbits(data, 5, 8, False)
        if raw is None:
            raise ValueError(f"'{text}' has an invalid bech32 payload")
        return bytes(raw)

    def module_address(self, module: str) -> str:
        """Address of a module account: the first 20 bytes of SHA-256 of its name.

        Example::

            >>> AddressCodec("cosmos").module_address("gov")
            'cosmos10d07y265gmmuvt4z0w9aw880jnsr700j6zn9kn'
        """
        return self.encode(hashlib.sha256(module.encode("utf-8")).digest()[:20])


def resolve_address(text: str, keyring: Optional[Keyring], codec: AddressCodec) -> str:
    """Resolve *text* (a key name or a literal address) to an address.

    Raises:
        NoKeyringError: If *text* is not an address and there is no keyring.
        SignerNotFoundError: If no key is called *text*.
        AmbiguousSignerError: If several keys are called *text*.
    """
    if codec.is_address(text):
        return text
    if keyring is None:
        raise NoKeyringError(
            f"'{text}' is not a valid {codec.prefix} address and no keyring is configured"
        )
    matches = keyring.lookup(text)
    if not matches:
        raise SignerNotFoundError(f"Signer '{text}' not found in keyring")
    if len(matches) > 1:
        candidates = ", ".join(f"{k.name} ({k.address})" for k in matches)
        raise AmbiguousSignerError(
            f"Signer '{text}' is ambiguous; it matches {len(matches)} keys: {candidates}"
        )
    return matches[0].address


def lenient_address_resolver(keyring: Optional[Keyring], codec: AddressCodec):
    """Return a resolver for address-annotated fields.

    Key names known to the keyring resolve to their address; anything else
    (including everything when there is no keyring) passes through
    verbatim, for the server to validate.  Ambiguous names still raise.
    """

    def resolve(text: str) -> str:
        if keyring is None or codec.is_address(text):
            return text
        try:
            return resolve_address(text, keyring, codec)
        except SignerNotFoundError:
            return text

    return resolve


def resolve_signer(
    request: DynamicMessage,
    field_name: str,
    keyring: Optional[Keyring],
    codec: AddressCodec,
) -> tuple[DynamicMessage, str]:
    """Resolve the signer field of *request* in place.

    Args:
        request: The assembled request; its signer field holds the raw
            ``--from`` value.
        field_name: Name of the signer field.
        keyring: The configured keyring, if any.
        codec: Address codec of the chain.

    Returns:
        ``(request, address)`` with the signer field set to *address*.

    Raises:
        SignerError: If no signer was given or it cannot be resolved.
    """
    raw = request.get(field_name)
    if not raw:
        raise SignerError(f"No signer given for field '{field_name}'")
    if keyring is None:
        raise NoKeyringError(f"No keyring configured; cannot resolve signer '{raw}'")
    address = resolve_address(raw, keyring, codec)
    request.set(field_name, address)
    return request, address
