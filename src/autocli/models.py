"""Canonical Pydantic models shared across all autocli modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`GlobalConfig` and
    :class:`Profile`.

**Schema descriptors** -- the service/method/message/field tree produced by
the schema loader and read by the generator:
    :class:`FieldKind`, :class:`Cardinality`, :class:`ServiceKind`,
    :class:`FieldDescriptor`, :class:`MessageDescriptor`,
    :class:`EnumDescriptor`, :class:`MethodDescriptor`,
    :class:`ServiceDescriptor` and :class:`SchemaDocument`.

**Command options** -- per-method customisation supplied by schema owners:
    :class:`FlagOptions`, :class:`PositionalArgDescriptor`,
    :class:`RpcCommandOptions`, :class:`ServiceCommandDescriptor` and
    :class:`ModuleOptions`.

Descriptors and command options are frozen: they are loaded once at start-up
and only read afterwards.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Config ---


class RequestConfig(BaseModel):
    """Default request settings applied to every executor call in a profile."""

    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, yaml, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/autocli/config.json``.

    Loaded and saved by :func:`~autocli.config.load_global_config` and
    :func:`~autocli.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~autocli.config.resolve_config`
    for the full precedence chain.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """Per-chain profile stored as JSON under the ``profiles/`` config directory.

    A profile points to one schema document and bundles everything needed to
    turn it into a working command tree: where to send requests, which keyring
    file resolves key names, the bech32 prefix of the chain's addresses and
    the application version used for version gates.

    See Also:
        :func:`~autocli.config.load_profile`: Deserialise a profile by name.
        :func:`~autocli.config.save_profile`: Persist a profile to disk.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    schema_source: str = Field(description="URL or file path to the schema document")
    endpoint: Optional[str] = Field(
        default=None, description="Base URL of the request executor"
    )
    keyring: Optional[str] = Field(
        default=None, description="Path to the keyring file (no keyring when unset)"
    )
    address_prefix: str = Field(
        default="cosmos", description="Bech32 human-readable prefix of account addresses"
    )
    app_version: Optional[str] = Field(
        default=None, description="Running application version for version gates"
    )
    gov_authority: Optional[str] = Field(
        default=None,
        description="Governance authority address (defaults to the gov module account)",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Schema descriptors ---


def strip_leading_dot(name: str) -> str:
    """Strip the leading dot of protoc-style fully-qualified names (``.cosmos.bank.v1beta1.MsgSend``)."""
    return name[1:] if name.startswith(".") else name


class FieldKind(str, enum.Enum):
    """Value kind of a message field.

    Scalar kinds follow the protobuf scalar types; ``ENUM`` and ``MESSAGE``
    reference another descriptor through :attr:`FieldDescriptor.type_name`.
    """

    DOUBLE = "double"
    FLOAT = "float"
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    SINT32 = "sint32"
    SINT64 = "sint64"
    FIXED32 = "fixed32"
    FIXED64 = "fixed64"
    SFIXED32 = "sfixed32"
    SFIXED64 = "sfixed64"
    BOOL = "bool"
    STRING = "string"
    BYTES = "bytes"
    ENUM = "enum"
    MESSAGE = "message"


class Cardinality(str, enum.Enum):
    """Whether a field holds one value, a list of values, or a key/value map."""

    SINGULAR = "singular"
    REPEATED = "repeated"
    MAP = "map"


class ServiceKind(str, enum.Enum):
    """Read-only query services versus transactional message services."""

    QUERY = "query"
    TX = "tx"


class FieldDescriptor(BaseModel):
    """One named, typed slot within a message.

    For ``MAP`` fields, :attr:`kind`/:attr:`type_name` describe the map value
    and :attr:`map_key` the key kind.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: FieldKind
    cardinality: Cardinality = Cardinality.SINGULAR
    type_name: Optional[str] = Field(
        default=None, description="Full name of the enum or message type"
    )
    map_key: Optional[FieldKind] = None
    scalar: Optional[str] = Field(
        default=None, description="Scalar annotation, e.g. cosmos.AddressString"
    )
    added_in: Optional[str] = Field(
        default=None, description="Application version that introduced the field"
    )
    required: bool = False
    description: Optional[str] = None
    default: Any = None

    @field_validator("type_name")
    @classmethod
    def _strip_leading_dot(cls, value: Optional[str]) -> Optional[str]:
        return strip_leading_dot(value) if value else value

    @property
    def is_repeated(self) -> bool:
        return self.cardinality == Cardinality.REPEATED

    @property
    def is_map(self) -> bool:
        return self.cardinality == Cardinality.MAP

    @property
    def is_message(self) -> bool:
        return self.kind == FieldKind.MESSAGE


class MessageDescriptor(BaseModel):
    """A record schema: an ordered list of fields plus message-level annotations.

    ``signer`` names the field(s) that identify who must authorise a
    transactional message.  Only one signer is supported; a descriptor listing
    more is rejected when a command is built for it.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    fields: list[FieldDescriptor] = Field(default_factory=list)
    signer: list[str] = Field(default_factory=list)
    description: Optional[str] = None

    def field(self, name: str) -> Optional[FieldDescriptor]:
        """Return the field called *name*, or ``None``."""
        for fd in self.fields:
            if fd.name == name:
                return fd
        return None


class EnumValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    number: int


class EnumDescriptor(BaseModel):
    """A closed set of named integer values."""

    model_config = ConfigDict(frozen=True)

    name: str
    values: list[EnumValue] = Field(default_factory=list)


class MethodDescriptor(BaseModel):
    """A single RPC method: input and output message references plus annotations."""

    model_config = ConfigDict(frozen=True)

    name: str
    input_type: str
    output_type: str
    description: Optional[str] = None
    added_in: Optional[str] = Field(
        default=None, description="Minimum application version that serves the method"
    )
    deprecated: bool = False

    @field_validator("input_type", "output_type")
    @classmethod
    def _strip_leading_dot(cls, value: str) -> str:
        return strip_leading_dot(value)


class ServiceDescriptor(BaseModel):
    """An RPC service and its ordered methods."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ServiceKind = ServiceKind.QUERY
    methods: list[MethodDescriptor] = Field(default_factory=list)
    description: Optional[str] = None

    def method(self, name: str) -> Optional[MethodDescriptor]:
        """Return the method called *name*, or ``None``."""
        for md in self.methods:
            if md.name == name:
                return md
        return None


# --- Command options ---


class FlagOptions(BaseModel):
    """Overrides applied to the flag generated for one field."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    shorthand: Optional[str] = None
    usage: Optional[str] = None
    default_value: Optional[str] = None
    hidden: bool = False
    deprecated: Optional[str] = None


class PositionalArgDescriptor(BaseModel):
    """Binds a (possibly dotted) field path to a positional argument slot."""

    model_config = ConfigDict(frozen=True)

    proto_field: str = Field(description="Dotted field path into the input message")
    optional: bool = False
    varargs: bool = False


class RpcCommandOptions(BaseModel):
    """Per-method customisation of the generated command."""

    model_config = ConfigDict(frozen=True)

    rpc_method: str
    use: Optional[str] = None
    short: Optional[str] = None
    long: Optional[str] = None
    example: Optional[str] = None
    alias: list[str] = Field(default_factory=list)
    deprecated: Optional[str] = None
    version: Optional[str] = Field(
        default=None, description="Minimum application version for this command"
    )
    positional_args: list[PositionalArgDescriptor] = Field(default_factory=list)
    flag_options: dict[str, FlagOptions] = Field(default_factory=dict)
    skip: bool = False
    governance_wrappable: bool = False
    enhance_custom_command: bool = False


class ServiceCommandDescriptor(BaseModel):
    """A node of the command hierarchy: one service plus nested sub-command groups."""

    model_config = ConfigDict(frozen=True)

    service: Optional[str] = None
    short: Optional[str] = None
    rpc_command_options: list[RpcCommandOptions] = Field(default_factory=list)
    sub_commands: dict[str, ServiceCommandDescriptor] = Field(default_factory=dict)
    enhance_custom_command: bool = False

    def options_for(self, method: str) -> Optional[RpcCommandOptions]:
        for opts in self.rpc_command_options:
            if opts.rpc_method == method:
                return opts
        return None


class ModuleOptions(BaseModel):
    """The query and transaction command descriptors of one module."""

    model_config = ConfigDict(frozen=True)

    query: Optional[ServiceCommandDescriptor] = None
    tx: Optional[ServiceCommandDescriptor] = None


class SchemaDocument(BaseModel):
    """Top-level shape of a schema document (JSON or YAML)."""

    app_version: Optional[str] = None
    messages: list[MessageDescriptor] = Field(default_factory=list)
    enums: list[EnumDescriptor] = Field(default_factory=list)
    services: list[ServiceDescriptor] = Field(default_factory=list)
    modules: dict[str, ModuleOptions] = Field(default_factory=dict)


ServiceCommandDescriptor.model_rebuild()
