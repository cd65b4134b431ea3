"""Init command -- create a profile from a schema document.

Implements the ``autocli init`` top-level command.  This is the typical
entry point for first-time setup: it loads a schema document (from a URL or
a local file), validates it, reports how many commands it yields, creates a
:class:`~autocli.models.Profile`, and writes a project-local
``autocli.json`` pinning the new profile.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Optional

import typer

from autocli.exceptions import AutocliError
from autocli.exit_codes import EXIT_INVALID_USAGE
from autocli.output import debug, error, info, success, suggest


def init_command(
    schema: str = typer.Option(
        ..., "--schema", "-s", help="Schema document URL or file path (JSON or YAML)."
    ),
    name: Optional[str] = typer.Option(
        None, "--name", help="Profile name (derived from the schema file name if omitted)."
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", help="Base URL requests are sent to."
    ),
    prefix: str = typer.Option(
        "cosmos", "--prefix", help="Bech32 prefix of account addresses."
    ),
    keyring: Optional[str] = typer.Option(
        None, "--keyring", help="Keyring file (defaults to the data directory)."
    ),
    app_version: Optional[str] = typer.Option(
        None, "--app-version", help="Application version used for version gates."
    ),
) -> None:
    """Initialize a profile from a schema document.

    Example::

        autocli init --schema ./chain.yaml --endpoint http://localhost:1317
        autocli init --schema https://example.com/schema.json --name testnet
    """
    from autocli.config import atomic_write, profile_exists, save_profile
    from autocli.generator import build_command_tree
    from autocli.models import Profile
    from autocli.schema import SchemaRegistry, load_schema_document

    if schema == "-":
        error("A profile needs a schema URL or file path, not stdin")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    is_url = schema.startswith(("http://", "https://"))
    source = schema if is_url else str(Path(schema).expanduser().resolve())

    info(f"Loading schema from: {schema}")
    try:
        registry = SchemaRegistry(load_schema_document(source))
        tree = build_command_tree(registry, app_version=app_version, strict=False)
    except AutocliError as exc:
        error(f"Failed to load schema: {exc}")
        raise typer.Exit(code=exc.exit_code) from None

    services = registry.services()
    commands = tree.commands()
    info(f"Validated: {len(services)} services, {len(commands)} commands")
    for command in commands:
        debug(f"  {command.display_name} -> {command.options.full_method}")

    profile_name = name or _slugify(Path(schema.rstrip("/")).stem)
    if profile_exists(profile_name):
        info(f'Profile "{profile_name}" already exists and will be overwritten.')

    profile = Profile(
        name=profile_name,
        schema_source=source,
        endpoint=endpoint,
        keyring=keyring,
        address_prefix=prefix,
        app_version=app_version or registry.app_version,
    )
    save_profile(profile)
    atomic_write(
        Path.cwd() / "autocli.json",
        json.dumps({"default_profile": profile_name}, indent=2) + "\n",
    )

    success(f'Profile "{profile_name}" created.')
    suggest(f"Inspect commands: autocli inspect commands --profile {profile_name}")
    if endpoint is None:
        suggest("No endpoint set; commands run as dry runs until you pass --endpoint")


def _slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower().strip()).strip("-")
    return slug or "default"
