"""autocli -- Generate command-line command trees from RPC service schemas.

This package walks a set of RPC service definitions (methods with typed
input and output message schemas) and synthesises one CLI command per
method, with one flag or positional argument per input field.  No
per-command code is written by hand: argument parsing, value coercion,
request assembly, signer resolution, governance-proposal wrapping and
dispatch are all driven by the schema.

Typical workflow::

    autocli --profile mychain query bank balance cosmos1...
    autocli tx circuit authorize-circuit-breaker <grantee> <level> --from alice

Modules:
    app: Typer application factory and CLI entry point.
    schema: Schema document loading and the descriptor registry.
    generator: Option resolution, argument binding and the command tree.
    values: Value coercion, dynamic messages and request assembly.
    runtime: Per-invocation flow from raw arguments to a rendered response.
    signer, proposal: Signer resolution and governance-proposal wrapping.
    client: Request executors and dispatch.
    keyring: Key-management collaborators.
    models: Pydantic models for schema descriptors, command options and config.
    config: XDG-aware configuration and profile management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
