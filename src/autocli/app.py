"""Typer application factory and CLI entry point for autocli.

This module wires together the top-level Typer application, registers the
built-in sub-commands (``init``, ``inspect``, ``keys``), and attaches the
``query`` / ``tx`` commands generated from the active profile's schema at
startup.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, attaches the generated
commands, and finally invokes the Typer app. Unhandled exceptions are
written to a crash log under the data directory.

See Also:
    :mod:`autocli.config`: Profile and global configuration resolution.
    :mod:`autocli.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional, Sequence

import typer

from autocli import __version__
from autocli.exit_codes import EXIT_GENERIC_FAILURE
from autocli.output import OutputFormat

logger = logging.getLogger(__name__)

# Output format from the configuration files, used when no flag is given.
_config_format: Optional[OutputFormat] = None


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"autocli {__version__}")
        raise typer.Exit()


def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", help="Override the profile's endpoint."
    ),
    output_format: Optional[OutputFormat] = typer.Option(
        None, "--output", "-o", case_sensitive=False, help="Output format."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format (same as --output json)."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Print requests instead of sending them."
    ),
) -> None:
    """Generate CLI commands from RPC service schemas.

    Initialises the global :class:`~autocli.output.OutputManager` from CLI
    flags, and stores shared options (``profile``, ``dry_run``, ...) in the
    Typer context so that sub-commands and the command runtime can read
    them via ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        profile: Profile name override (highest precedence).
        endpoint: Endpoint override for the active profile.
        output_format: Output format; ``--json`` is a shortcut for ``json``.
        json_output: Force JSON output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
        dry_run: Print requests instead of executing them.
    """
    from autocli.output import OutputManager, set_output

    fmt = output_format or _config_format or OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["endpoint"] = endpoint
    ctx.obj["dry_run"] = dry_run
    ctx.obj["verbose"] = verbose


def create_app() -> typer.Typer:
    """Create the root application with its callback and built-in commands."""
    from autocli.commands.init import init_command
    from autocli.commands.inspect import inspect_app
    from autocli.commands.keys import keys_app

    root = typer.Typer(
        name="autocli",
        help="Generate CLI commands from RPC service schemas.",
        no_args_is_help=True,
        add_completion=True,
        rich_markup_mode="rich",
    )
    root.callback()(main_callback)
    root.command("init")(init_command)
    root.add_typer(inspect_app, name="inspect", help="Inspect the schema and generated commands.")
    root.add_typer(keys_app, name="keys", help="Manage keyring entries.")
    return root


app = create_app()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _setup_logging(argv: Sequence[str]) -> None:
    """Send library log records to stderr; debug records only with ``--verbose``."""
    verbose = "--verbose" in argv or "-v" in argv
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from autocli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def _root_option(argv: Sequence[str], *names: str) -> Optional[str]:
    """Return the value of a root option (``--name value`` or ``--name=value``) in *argv*."""
    for index, arg in enumerate(argv):
        if arg in names and index + 1 < len(argv):
            return argv[index + 1]
        for name in names:
            if name.startswith("--") and arg.startswith(f"{name}="):
                return arg.split("=", 1)[1]
    return None


def _load_dynamic_commands(root: typer.Typer, argv: Sequence[str]) -> None:
    """Attach the ``query`` / ``tx`` commands generated from the active profile.

    Resolves the active profile via :func:`~autocli.config.resolve_config`,
    loads its schema document, builds the command tree and attaches it to
    *root* additively.  The tree is built in non-strict mode: a command with
    invalid options is reported and left out while the others stay usable.

    Profile and schema errors are reported as a warning so that the
    built-in commands (``init``, ``inspect``, ``keys``) remain available.
    """
    global _config_format

    from autocli.client import ConnectExecutor
    from autocli.config import resolve_config, resolve_keyring_path
    from autocli.exceptions import AutocliError
    from autocli.generator import attach_command_tree, build_command_tree
    from autocli.keyring import FileKeyring
    from autocli.output import debug, warning
    from autocli.runtime import CommandRuntime
    from autocli.schema import SchemaRegistry, load_schema_document
    from autocli.signer import AddressCodec

    try:
        config, profile = resolve_config(
            cli_profile=_root_option(argv, "--profile", "-p"),
            cli_endpoint=_root_option(argv, "--endpoint"),
        )
        if config.output.format:
            try:
                _config_format = OutputFormat(config.output.format.lower())
            except ValueError:
                warning(f"Ignoring unknown output format '{config.output.format}' in config")
        if profile is None:
            return

        debug(f"Loading schema from profile: {profile.name}")
        registry = SchemaRegistry(load_schema_document(profile.schema_source))
        executor = (
            ConnectExecutor(profile.endpoint, profile.request) if profile.endpoint else None
        )
        runtime = CommandRuntime(
            registry,
            executor=executor,
            keyring=FileKeyring(resolve_keyring_path(profile)),
            codec=AddressCodec(profile.address_prefix),
            gov_authority=profile.gov_authority,
        )
        tree = build_command_tree(
            registry,
            app_version=profile.app_version or registry.app_version,
            strict=False,
        )
        attach_command_tree(root, tree, runtime)
    except AutocliError as exc:
        warning(f"Generated commands are unavailable: {exc}")


def main() -> None:
    """CLI entry point invoked by the ``autocli`` console script.

    Performs the following sequence:

    1. Install signal handlers for clean Ctrl-C behaviour.
    2. Attach the commands generated from the active profile's schema.
    3. Invoke the Typer application.

    Unhandled :class:`~autocli.exceptions.AutocliError` instances cause a
    clean exit with the error's ``exit_code``.  All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    argv = sys.argv[1:]
    try:
        _setup_logging(argv)
        _load_dynamic_commands(app, argv)
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from autocli.exceptions import AutocliError
        from autocli.output import error

        if isinstance(exc, AutocliError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
