"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~autocli.exceptions.AutocliError` subclass.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ autocli tx bank send alice cosmos1... 10stake
    $ echo $?
    4   # EXIT_SIGNER_ERROR -- key "alice" is not in the keyring
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or values that could not be coerced."""

EXIT_CONFIGURATION_ERROR = 3
"""The command options supplied for a service are invalid."""

EXIT_SIGNER_ERROR = 4
"""The transaction signer could not be resolved (unknown key, no keyring, ambiguity)."""

EXIT_EXECUTION_ERROR = 5
"""The request executor reported a remote or network failure."""

EXIT_SCHEMA_PARSE_ERROR = 7
"""The service schema document could not be loaded or validated."""
