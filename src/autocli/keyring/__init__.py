"""Key management -- resolve key names to addresses and sign transactions.

Classes:
    :class:`Keyring` -- abstract collaborator used by the runtime.
    :class:`KeyRecord` -- a named address.
    :class:`FileKeyring` -- YAML/JSON key directory managed by ``autocli keys``.
"""

from autocli.keyring.base import KeyRecord, Keyring
from autocli.keyring.file import FileKeyring

__all__ = ["FileKeyring", "KeyRecord", "Keyring"]
