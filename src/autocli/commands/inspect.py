"""Inspect commands -- examine the schema behind the generated commands.

Provides the ``autocli inspect`` sub-command group with read-only commands
for viewing the services, methods and messages of the active profile's
schema document, and the commands generated from them.  All sub-commands
resolve the active profile, load its schema, and present the data in table
or structured output format.
"""

from __future__ import annotations

from typing import Optional

import typer

from autocli.exceptions import AutocliError
from autocli.exit_codes import EXIT_INVALID_USAGE
from autocli.output import error, get_output, info


inspect_app = typer.Typer(no_args_is_help=True)


def _load_registry_from_profile(ctx: typer.Context, profile_name: Optional[str] = None):  # noqa: ANN202
    """Load the schema registry and profile for the active (or named) profile.

    Args:
        ctx: Typer context; the root ``--profile`` is used when
            *profile_name* is ``None``.
        profile_name: Explicit profile name.

    Returns:
        A ``(SchemaRegistry, Profile)`` tuple.

    Raises:
        typer.Exit: When no profile can be resolved or the schema cannot
            be loaded.
    """
    from autocli.config import resolve_config
    from autocli.schema import SchemaRegistry, load_schema_document

    root_obj = ctx.find_root().obj or {}
    try:
        _, profile = resolve_config(cli_profile=profile_name or root_obj.get("profile"))
        if profile is None:
            error("No active profile. Run: autocli init --schema <path>")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        registry = SchemaRegistry(load_schema_document(profile.schema_source))
    except AutocliError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    return registry, profile


@inspect_app.command("services")
def inspect_services(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name."),
) -> None:
    """List the RPC services of the schema.

    Example::

        autocli inspect services
        autocli inspect services --json
    """
    from autocli.generator.naming import default_module_name

    registry, _ = _load_registry_from_profile(ctx, profile)

    rows = [
        [service.name, service.kind.value, default_module_name(service.name), str(len(service.methods))]
        for service in sorted(registry.services(), key=lambda s: s.name)
    ]
    get_output().print_table(
        ["Service", "Kind", "Module", "Methods"], rows, title=f"Services ({len(rows)})"
    )


@inspect_app.command("methods")
def inspect_methods(
    ctx: typer.Context,
    service: str = typer.Argument(help="Fully-qualified service name."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name."),
) -> None:
    """List the methods of one service with their input and output messages.

    Example::

        autocli inspect methods cosmos.bank.v1beta1.Msg
    """
    registry, _ = _load_registry_from_profile(ctx, profile)
    try:
        descriptor = registry.service(service)
    except AutocliError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows = [
        [
            method.name,
            method.input_type,
            method.output_type,
            method.added_in or "-",
            "Yes" if method.deprecated else "",
        ]
        for method in descriptor.methods
    ]
    get_output().print_table(
        ["Method", "Input", "Output", "Since", "Deprecated"],
        rows,
        title=f"{descriptor.name} ({len(rows)})",
    )


@inspect_app.command("message")
def inspect_message(
    ctx: typer.Context,
    name: str = typer.Argument(help="Fully-qualified message name."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name."),
) -> None:
    """Show the fields of a message and how they are written on the command line.

    Example::

        autocli inspect message cosmos.bank.v1beta1.MsgSend
    """
    from autocli.values import value_hint

    registry, _ = _load_registry_from_profile(ctx, profile)
    try:
        message = registry.message(name)
    except AutocliError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    signers = set(message.signer)
    rows = []
    for fd in message.fields:
        notes = []
        if fd.name in signers:
            notes.append("signer")
        if fd.required:
            notes.append("required")
        if fd.added_in:
            notes.append(f"since {fd.added_in}")
        rows.append([fd.name, value_hint(fd, registry), ", ".join(notes)])

    if not rows:
        info(f"{message.name} has no fields.")
        return
    get_output().print_table(["Field", "Value", "Notes"], rows, title=message.name)


@inspect_app.command("commands")
def inspect_commands(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name."),
) -> None:
    """List the commands generated from the schema.

    Commands omitted because of configuration errors are reported as
    warnings on stderr.

    Example::

        autocli inspect commands
    """
    from autocli.generator import build_command_tree

    registry, active = _load_registry_from_profile(ctx, profile)
    try:
        tree = build_command_tree(registry, app_version=active.app_version, strict=False)
    except AutocliError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows = []
    for command in tree.commands():
        flags = [f.flag for f in command.flags if not f.hidden]
        flags.extend(f"--{name}" for name in command.proposal_params)
        rows.append([
            command.display_name,
            " ".join(p.metavar for p in command.positionals),
            " ".join(flags),
            command.options.full_method,
        ])

    get_output().print_table(
        ["Command", "Arguments", "Flags", "RPC method"],
        rows,
        title=f"Commands ({len(rows)})",
    )
