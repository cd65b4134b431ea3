"""Exception hierarchy for autocli.

All exceptions inherit from :class:`AutocliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`autocli.exit_codes`.
Generated commands catch ``AutocliError`` and exit with the appropriate code,
and the top-level handler in :func:`autocli.app.main` does the same for
errors raised while the command tree is being loaded.  Unexpected exceptions
produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    AutocliError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- CoercionError       (exit 2)
    +-- ConfigurationError  (exit 3)
    +-- SignerError         (exit 4)
    |   +-- SignerNotFoundError
    |   +-- AmbiguousSignerError
    |   +-- NoKeyringError
    +-- ExecutionError      (exit 5)
    +-- SchemaParseError    (exit 7)
    +-- ConfigError         (exit 1)
"""

from __future__ import annotations

from autocli.exit_codes import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_EXECUTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SCHEMA_PARSE_ERROR,
    EXIT_SIGNER_ERROR,
)


class AutocliError(Exception):
    """Base exception for all autocli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`autocli.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AutocliError):
    """Raised for invalid CLI arguments outside of value coercion."""

    exit_code = EXIT_INVALID_USAGE


class CoercionError(AutocliError):
    """Raised when a raw command-line value cannot be converted to its field's type.

    Coercion helpers raise it with a bare description of the problem; the
    command runtime re-raises it prefixed with the command and the flag or
    positional argument involved.
    """

    exit_code = EXIT_INVALID_USAGE


class ConfigurationError(AutocliError):
    """Raised at build time for invalid command options.

    Examples are a ``varargs`` positional argument that is not last, a
    positional path that does not exist in the input message, two flags with
    the same name, or a message declaring more than one signer field.
    """

    exit_code = EXIT_CONFIGURATION_ERROR


class SignerError(AutocliError):
    """Raised when the signer of a transaction cannot be resolved or used."""

    exit_code = EXIT_SIGNER_ERROR


class SignerNotFoundError(SignerError):
    """Raised when a key name is neither a literal address nor a keyring entry."""


class AmbiguousSignerError(SignerError):
    """Raised when a key name matches more than one keyring entry."""


class NoKeyringError(SignerError):
    """Raised when a command needs a signer but no keyring was configured."""


class ExecutionError(AutocliError):
    """Raised when the request executor reports a remote or network failure.

    The message is the executor's own, passed through verbatim.
    """

    exit_code = EXIT_EXECUTION_ERROR


class SchemaParseError(AutocliError):
    """Raised when a schema document cannot be loaded, parsed or resolved."""

    exit_code = EXIT_SCHEMA_PARSE_ERROR


class ConfigError(AutocliError):
    """Raised for configuration problems (missing profiles, invalid JSON)."""

    exit_code = EXIT_GENERIC_FAILURE
