"""Argument binding -- decide which field becomes which flag or positional slot.

Binding rules for one method:

1. Each positional descriptor takes a slot in declaration order.  Its
   top-level field leaves flag candidacy (a flattened ``permissions.level``
   removes the ``--permissions`` JSON flag).
2. The signer field of a transactional method is bound to ``--from``
   unless a positional targets it.
3. Every remaining top-level field becomes one flag named after the field
   in kebab case, with :class:`~autocli.models.FlagOptions` overrides.
   Fields gated out by version get no flag.
4. Transactional methods that are governance wrappable also get the
   proposal flags (``--no-proposal``, ``--title``, ``--summary``,
   ``--metadata``, ``--deposit``, ``--expedited``).

Any two flags sharing a name or shorthand, including the reserved ones, is
a :class:`~autocli.exceptions.ConfigurationError`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Mapping, Optional

from autocli.exceptions import ConfigurationError
from autocli.generator.naming import sanitize_param_name, to_kebab
from autocli.generator.options import EffectiveOptions
from autocli.models import FieldDescriptor, FlagOptions, MethodDescriptor
from autocli.schema.registry import SchemaRegistry
from autocli.values.coerce import value_hint

PROPOSAL_FLAGS: tuple[str, ...] = (
    "no-proposal",
    "title",
    "summary",
    "metadata",
    "deposit",
    "expedited",
)

# Flags click adds to every command. Root option shorthands are read from
# raw argv before parsing, so generated flags may not reuse them.
_BUILTIN_FLAGS = frozenset({"help"})
_BUILTIN_SHORTHANDS = frozenset({"h", "v", "q", "p", "o", "n"})


@dataclass(frozen=True)
class FlagBinding:
    """A ``--flag`` bound to one top-level field of the input message."""

    path: str
    name: str
    field: FieldDescriptor
    param_name: str
    help: str = ""
    shorthand: Optional[str] = None
    default_value: Optional[str] = None
    hidden: bool = False
    deprecated: Optional[str] = None
    required: bool = False
    signer: bool = False

    @property
    def flag(self) -> str:
        return f"--{self.name}"

    @property
    def multiple(self) -> bool:
        """Whether the flag may be given more than once."""
        return self.field.is_repeated or self.field.is_map


@dataclass(frozen=True)
class PositionalBinding:
    """A positional slot bound to a (possibly dotted) field path."""

    path: str
    field: FieldDescriptor
    param_name: str
    optional: bool = False
    varargs: bool = False
    signer: bool = False

    @property
    def display_name(self) -> str:
        return to_kebab(self.path.rsplit(".", 1)[-1])

    @property
    def metavar(self) -> str:
        if self.varargs:
            return f"[{self.display_name}...]"
        if self.optional:
            return f"[{self.display_name}]"
        return f"<{self.display_name}>"


@dataclass(frozen=True)
class GeneratedCommand:
    """Immutable description of one leaf command.

    ``proposal_params`` maps each proposal flag name to the Python
    parameter that carries it and is empty unless the method is
    governance wrappable.
    """

    options: EffectiveOptions
    positionals: tuple[PositionalBinding, ...]
    flags: tuple[FlagBinding, ...]
    proposal_params: Mapping[str, str] = field(default_factory=dict)
    path: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.options.name

    @property
    def method(self) -> MethodDescriptor:
        return self.options.method

    @property
    def transactional(self) -> bool:
        return self.options.transactional

    @property
    def invocation(self) -> str:
        """Usage line: the command name followed by its positional metavars."""
        return " ".join([self.name, *(p.metavar for p in self.positionals)])

    @property
    def display_name(self) -> str:
        """The full command path used in error messages (``tx circuit authorize``)."""
        return " ".join(self.path) if self.path else self.name

    @property
    def signer_path(self) -> Optional[str]:
        signer = self.options.signer
        return signer.name if signer is not None else None

    def flag_for(self, path: str) -> Optional[FlagBinding]:
        for binding in self.flags:
            if binding.path == path:
                return binding
        return None

    def at(self, path: tuple[str, ...]) -> GeneratedCommand:
        """Return a copy placed at the command *path*."""
        return dataclasses.replace(self, path=path)


def bind_arguments(
    registry: SchemaRegistry,
    options: EffectiveOptions,
    signer_flag: str = "from",
) -> GeneratedCommand:
    """Bind every input field of a method to a flag or positional slot.

    Args:
        registry: Registry used to resolve dotted positional paths.
        options: Resolved options of the method.
        signer_flag: Name of the flag that carries the signer.

    Returns:
        The :class:`GeneratedCommand` for the method.

    Raises:
        ConfigurationError: On flag name or shorthand collisions.
    """
    label = f"{options.service.name}.{options.method.name}"
    params = _ParamAllocator()
    signer = options.signer

    proposal_params: dict[str, str] = {}
    if options.governance_wrappable:
        for flag_name in PROPOSAL_FLAGS:
            proposal_params[flag_name] = params.allocate(f"proposal_{flag_name}")

    positionals: list[PositionalBinding] = []
    positional_roots: set[str] = set()
    for pos in options.positional_args:
        chain = registry.field_path(options.input, pos.proto_field) or []
        positional_roots.add(chain[0].name)
        positionals.append(PositionalBinding(
            path=pos.proto_field,
            field=chain[-1],
            param_name=params.allocate(pos.proto_field),
            optional=pos.optional,
            varargs=pos.varargs,
            signer=signer is not None and pos.proto_field == signer.name,
        ))

    flags: list[FlagBinding] = []
    if signer is not None and signer.name not in positional_roots:
        flags.append(FlagBinding(
            path=signer.name,
            name=signer_flag,
            field=signer,
            param_name=params.allocate(signer_flag),
            help="Name or address of the key that signs the transaction.",
            required=True,
            signer=True,
        ))

    for fd in options.input.fields:
        if fd.name in positional_roots or fd.name in options.hidden_fields:
            continue
        if signer is not None and fd.name == signer.name:
            continue
        fo = options.flag_options.get(fd.name) or FlagOptions()
        name = fo.name or to_kebab(fd.name)
        flags.append(FlagBinding(
            path=fd.name,
            name=name,
            field=fd,
            param_name=params.allocate(name),
            help=_flag_help(fd, fo, registry),
            shorthand=fo.shorthand,
            default_value=fo.default_value,
            hidden=fo.hidden,
            deprecated=fo.deprecated,
            required=fd.required and fd.default is None and fo.default_value is None,
        ))

    _check_collisions(flags, proposal_params, label)
    return GeneratedCommand(
        options=options,
        positionals=tuple(positionals),
        flags=tuple(flags),
        proposal_params=proposal_params,
    )


def _flag_help(fd: FieldDescriptor, fo: FlagOptions, registry: SchemaRegistry) -> str:
    text = fo.usage or fd.description or ""
    hint = f"({value_hint(fd, registry)})"
    text = f"{text}  {hint}" if text else hint
    if fd.required and fd.default is None and fo.default_value is None:
        text = f"{text}  [REQUIRED]"
    if fo.deprecated:
        text = f"[DEPRECATED: {fo.deprecated}] {text}"
    return text


def _check_collisions(
    flags: list[FlagBinding],
    proposal_params: Mapping[str, str],
    label: str,
) -> None:
    owners: dict[str, str] = {name: "built-in flag" for name in _BUILTIN_FLAGS}
    owners.update({name: "proposal flag" for name in proposal_params})
    shorthands: dict[str, str] = {s: "built-in flag" for s in _BUILTIN_SHORTHANDS}

    for binding in flags:
        owner = "signer flag" if binding.signer else f"field '{binding.path}'"
        if binding.name in owners:
            raise ConfigurationError(
                f"{label}: flag --{binding.name} of {owner} collides with the "
                f"{owners[binding.name]} of the same name"
            )
        owners[binding.name] = owner
        if binding.shorthand is None:
            continue
        if len(binding.shorthand) != 1:
            raise ConfigurationError(
                f"{label}: shorthand '{binding.shorthand}' of --{binding.name} "
                "must be a single character"
            )
        if binding.shorthand in shorthands:
            raise ConfigurationError(
                f"{label}: shorthand -{binding.shorthand} of --{binding.name} "
                f"is already used by the {shorthands[binding.shorthand]}"
            )
        shorthands[binding.shorthand] = f"flag --{binding.name}"


class _ParamAllocator:
    """Hand out unique Python parameter names for one generated function."""

    def __init__(self) -> None:
        self._used: set[str] = set()

    def allocate(self, name: str) -> str:
        base = sanitize_param_name(name)
        candidate = base
        counter = 2
        while candidate in self._used:
            candidate = f"{base}_{counter}"
            counter += 1
        self._used.add(candidate)
        return candidate
