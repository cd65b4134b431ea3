"""Keys commands -- manage the named addresses of the file keyring.

Provides the ``autocli keys`` sub-command group.  The keyring file maps
key names to account addresses so that ``--from alice`` and address
fields can be given by name.  Its location is ``AUTOCLI_KEYRING``, else the
profile's ``keyring`` setting, else ``keyring.yaml`` in the data directory.
"""

from __future__ import annotations

from typing import Optional

import typer

from autocli.exceptions import AutocliError, InvalidUsageError, SignerNotFoundError
from autocli.output import error, format_response, get_output, info, success


keys_app = typer.Typer(no_args_is_help=True)


def _open_keyring(ctx: typer.Context, profile_name: Optional[str] = None):  # noqa: ANN202
    """Return ``(FileKeyring, AddressCodec)`` for the active profile (if any)."""
    from autocli.config import resolve_config, resolve_keyring_path
    from autocli.keyring import FileKeyring
    from autocli.signer import AddressCodec

    root_obj = ctx.find_root().obj or {}
    _, profile = resolve_config(cli_profile=profile_name or root_obj.get("profile"))
    keyring = FileKeyring(resolve_keyring_path(profile))
    codec = AddressCodec(profile.address_prefix) if profile is not None else AddressCodec()
    return keyring, codec


def _fail(exc: AutocliError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


@keys_app.command("list")
def keys_list(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name."),
) -> None:
    """List all keys.

    Example::

        autocli keys list
        autocli keys list --json
    """
    try:
        keyring, _ = _open_keyring(ctx, profile)
        keys = keyring.list_keys()
    except AutocliError as exc:
        raise _fail(exc) from None

    if not keys:
        info(f"No keys in {keyring.path}")
        return
    rows = [[k.name, k.address] for k in keys]
    get_output().print_table(["Name", "Address"], rows, title=f"Keys ({len(rows)})")


@keys_app.command("show")
def keys_show(
    ctx: typer.Context,
    name: str = typer.Argument(help="Key name."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name."),
) -> None:
    """Show the address of a key.

    Example::

        autocli keys show alice
    """
    try:
        keyring, _ = _open_keyring(ctx, profile)
        matches = keyring.lookup(name)
        if not matches:
            raise SignerNotFoundError(f"Key '{name}' not found in {keyring.path}")
    except AutocliError as exc:
        raise _fail(exc) from None

    if len(matches) == 1:
        format_response(matches[0].model_dump())
    else:
        format_response([k.model_dump() for k in matches])


@keys_app.command("add")
def keys_add(
    ctx: typer.Context,
    name: str = typer.Argument(help="Key name."),
    address: str = typer.Argument(help="Bech32 account address."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name."),
) -> None:
    """Add a named address to the keyring.

    The address must be a valid bech32 address with the profile's prefix.

    Example::

        autocli keys add alice cosmos1...
    """
    try:
        keyring, codec = _open_keyring(ctx, profile)
        if not codec.is_address(address):
            raise InvalidUsageError(
                f"'{address}' is not a valid '{codec.prefix}' bech32 address"
            )
        keyring.add(name, address)
        keyring.save()
    except AutocliError as exc:
        raise _fail(exc) from None

    success(f"Key '{name}' added to {keyring.path}.")


@keys_app.command("delete")
def keys_delete(
    ctx: typer.Context,
    name: str = typer.Argument(help="Key name."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name."),
) -> None:
    """Delete a key from the keyring.

    Example::

        autocli keys delete alice
    """
    try:
        keyring, _ = _open_keyring(ctx, profile)
        if not keyring.delete(name):
            raise SignerNotFoundError(f"Key '{name}' not found in {keyring.path}")
        keyring.save()
    except AutocliError as exc:
        raise _fail(exc) from None

    success(f"Key '{name}' deleted.")
