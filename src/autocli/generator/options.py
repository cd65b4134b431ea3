"""Option resolver -- merge defaults derived from the schema with user overrides.

For every method the resolver produces an :class:`EffectiveOptions` record,
or ``None`` when the method must not become a command:

* ``skip`` is set in the user options, or
* the method's minimum version (the ``version`` option, else the method's
  ``added_in`` annotation) is newer than the running application version.

Configuration mistakes are raised as
:class:`~autocli.exceptions.ConfigurationError` naming the offending
method: positional paths that do not resolve, a varargs slot that is not
last, not repeated, or not unique, flag options for unknown fields, and
input messages with more than one signer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from packaging.version import InvalidVersion, Version

from autocli.exceptions import ConfigurationError
from autocli.models import (
    FieldDescriptor,
    FlagOptions,
    MessageDescriptor,
    MethodDescriptor,
    PositionalArgDescriptor,
    RpcCommandOptions,
    ServiceDescriptor,
    ServiceKind,
)
from autocli.generator.naming import to_kebab
from autocli.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveOptions:
    """The merged customisation of one method, ready for argument binding."""

    service: ServiceDescriptor
    method: MethodDescriptor
    input: MessageDescriptor
    name: str
    use: str
    short: Optional[str] = None
    long: Optional[str] = None
    example: Optional[str] = None
    aliases: tuple[str, ...] = ()
    deprecated: Optional[str] = None
    positional_args: tuple[PositionalArgDescriptor, ...] = ()
    flag_options: Mapping[str, FlagOptions] = field(default_factory=dict)
    governance_wrappable: bool = False
    enhance_custom_command: bool = False
    signer: Optional[FieldDescriptor] = None
    hidden_fields: frozenset[str] = frozenset()

    @property
    def transactional(self) -> bool:
        return self.service.kind == ServiceKind.TX

    @property
    def full_method(self) -> str:
        """The method path used on the wire, e.g. ``/cosmos.bank.v1beta1.Msg/Send``."""
        return f"/{self.service.name}/{self.method.name}"

    @property
    def help(self) -> str:
        """One-line help: ``short``, else the method description, else a generic line."""
        if self.short:
            return self.short
        if self.method.description:
            return self.method.description.strip().split("\n", 1)[0]
        return f"Execute the {self.method.name} RPC method"


def parse_version(value: str, context: str) -> Version:
    try:
        return Version(value)
    except InvalidVersion as exc:
        raise ConfigurationError(f"{context}: invalid version '{value}'") from exc


def is_version_gated(min_version: Optional[str], app_version: Optional[str]) -> bool:
    """Return ``True`` when *min_version* is newer than *app_version*.

    No gate applies when either side is unset.

    Example::

        >>> is_version_gated("0.53.0", "0.50.1")
        True
        >>> is_version_gated("0.50.0", None)
        False
    """
    if not min_version or not app_version:
        return False
    return parse_version(min_version, "minimum version") > parse_version(
        app_version, "application version"
    )


def resolve_options(
    registry: SchemaRegistry,
    service: ServiceDescriptor,
    method: MethodDescriptor,
    user_options: Optional[RpcCommandOptions] = None,
    app_version: Optional[str] = None,
) -> Optional[EffectiveOptions]:
    """Merge the schema-derived defaults of *method* with *user_options*.

    Args:
        registry: Registry that resolves the method's input message.
        service: The service that declares *method*.
        method: The method to resolve.
        user_options: Per-method overrides; ``None`` means all defaults.
        app_version: Version of the running application, compared against
            version gates.  ``None`` disables version gating.

    Returns:
        The :class:`EffectiveOptions`, or ``None`` when the method is
        skipped or gated out.

    Raises:
        ConfigurationError: If the overrides are inconsistent with the
            input schema.
    """
    opts = user_options or RpcCommandOptions(rpc_method=method.name)
    label = f"{service.name}.{method.name}"

    if opts.skip:
        logger.debug("Skipping %s (skip option)", label)
        return None

    min_version = opts.version or method.added_in
    if is_version_gated(min_version, app_version):
        logger.debug(
            "Skipping %s: requires version %s, running %s", label, min_version, app_version
        )
        return None

    input_msg = registry.input_of(method)
    try:
        signer = registry.signer_field(input_msg)
    except ConfigurationError as exc:
        raise ConfigurationError(f"{label}: {exc}") from exc
    if service.kind != ServiceKind.TX:
        signer = None

    hidden_fields = frozenset(
        fd.name for fd in input_msg.fields if is_version_gated(fd.added_in, app_version)
    )
    _validate_positionals(registry, input_msg, opts.positional_args, hidden_fields, label)
    for flag_field in opts.flag_options:
        if input_msg.field(flag_field) is None:
            raise ConfigurationError(
                f"{label}: flag options given for unknown field '{flag_field}'"
            )

    if opts.governance_wrappable and service.kind == ServiceKind.TX and signer is None:
        raise ConfigurationError(
            f"{label}: governance_wrappable requires a signer field on {input_msg.name}"
        )

    use = opts.use or to_kebab(method.name)
    name = use.split()[0]

    return EffectiveOptions(
        service=service,
        method=method,
        input=input_msg,
        name=name,
        use=use,
        short=opts.short,
        long=opts.long or method.description,
        example=opts.example,
        aliases=tuple(opts.alias),
        deprecated=opts.deprecated or ("deprecated" if method.deprecated else None),
        positional_args=tuple(opts.positional_args),
        flag_options=dict(opts.flag_options),
        governance_wrappable=opts.governance_wrappable and service.kind == ServiceKind.TX,
        enhance_custom_command=opts.enhance_custom_command,
        signer=signer,
        hidden_fields=hidden_fields,
    )


def _validate_positionals(
    registry: SchemaRegistry,
    message: MessageDescriptor,
    positionals: tuple[PositionalArgDescriptor, ...] | list[PositionalArgDescriptor],
    hidden_fields: frozenset[str],
    label: str,
) -> None:
    varargs = [p for p in positionals if p.varargs]
    if len(varargs) > 1:
        raise ConfigurationError(f"{label}: more than one varargs positional argument")

    seen: set[str] = set()
    optional_seen = False
    for index, pos in enumerate(positionals):
        chain = registry.field_path(message, pos.proto_field)
        if chain is None:
            raise ConfigurationError(
                f"{label}: positional argument '{pos.proto_field}' does not name "
                f"a field of {message.name}"
            )
        if chain[0].name in hidden_fields:
            raise ConfigurationError(
                f"{label}: positional argument '{pos.proto_field}' targets a field "
                "that is not available in this application version"
            )
        if pos.proto_field in seen:
            raise ConfigurationError(
                f"{label}: positional argument '{pos.proto_field}' is bound twice"
            )
        seen.add(pos.proto_field)

        if pos.varargs:
            if index != len(positionals) - 1:
                raise ConfigurationError(
                    f"{label}: varargs positional '{pos.proto_field}' must be the last argument"
                )
            if not chain[-1].is_repeated:
                raise ConfigurationError(
                    f"{label}: varargs positional '{pos.proto_field}' must target a repeated field"
                )

        if pos.optional or pos.varargs:
            optional_seen = True
        elif optional_seen:
            raise ConfigurationError(
                f"{label}: required positional '{pos.proto_field}' follows an optional one"
            )
