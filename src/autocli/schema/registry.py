"""Schema reflector -- index descriptors by full name and answer structural queries.

:class:`SchemaRegistry` is the read-only view the generator and the runtime
use to look at services, methods and messages.  It is built once from a
:class:`~autocli.models.SchemaDocument`, checks that every type reference
resolves, and afterwards only answers questions:

* which message is the input/output of a method,
* which field of a message is its signer,
* which chain of fields a dotted path such as ``permissions.level`` walks.

Annotations (signer, ``added_in`` version gates, scalar annotations) are
plain data on the descriptors; the registry does not interpret them beyond
lookups.
"""

from __future__ import annotations

import logging
from typing import Optional

from autocli.exceptions import ConfigurationError, SchemaParseError
from autocli.models import (
    EnumDescriptor,
    FieldDescriptor,
    FieldKind,
    MessageDescriptor,
    MethodDescriptor,
    ModuleOptions,
    SchemaDocument,
    ServiceDescriptor,
    strip_leading_dot,
)
from autocli.schema.wellknown import WELL_KNOWN_MESSAGES

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """Index of messages, enums and services from one or more schema documents.

    Args:
        document: Optional document to load immediately.
        include_well_known: Register the built-in well-known messages
            (durations, timestamps, coins, ``Any`` and the governance
            proposal envelope).

    Example::

        registry = SchemaRegistry(load_schema_document("chain.yaml"))
        method = registry.method("cosmos.bank.v1beta1.Query", "Balance")
        request_type = registry.input_of(method)
    """

    def __init__(
        self,
        document: Optional[SchemaDocument] = None,
        include_well_known: bool = True,
    ) -> None:
        self._messages: dict[str, MessageDescriptor] = {}
        self._enums: dict[str, EnumDescriptor] = {}
        self._services: dict[str, ServiceDescriptor] = {}
        self._modules: dict[str, ModuleOptions] = {}
        self.app_version: Optional[str] = None

        if include_well_known:
            for message in WELL_KNOWN_MESSAGES:
                self._messages[message.name] = message
        if document is not None:
            self.load(document)

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    def load(self, document: SchemaDocument) -> None:
        """Register every descriptor in *document* and validate references.

        Raises:
            SchemaParseError: If a type reference does not resolve, a service
                is declared twice, or a message's signer names a missing field.
        """
        for enum_desc in document.enums:
            self._enums[strip_leading_dot(enum_desc.name)] = enum_desc
        for message in document.messages:
            self._messages[strip_leading_dot(message.name)] = message
        for service in document.services:
            name = strip_leading_dot(service.name)
            if name in self._services:
                raise SchemaParseError(f"Service '{name}' is declared twice")
            self._services[name] = service
        self._modules.update(document.modules)
        if document.app_version:
            self.app_version = document.app_version

        self._validate()
        logger.debug(
            "Schema registry holds %d services, %d messages, %d enums",
            len(self._services), len(self._messages), len(self._enums),
        )

    def _validate(self) -> None:
        for message in self._messages.values():
            for fd in message.fields:
                self._check_field_reference(message, fd)
            for signer in message.signer:
                if message.field(signer) is None:
                    raise SchemaParseError(
                        f"Message '{message.name}' declares signer '{signer}' "
                        "which is not one of its fields"
                    )
        for service in self._services.values():
            for method in service.methods:
                for ref in (method.input_type, method.output_type):
                    if strip_leading_dot(ref) not in self._messages:
                        raise SchemaParseError(
                            f"Method {service.name}.{method.name} references "
                            f"unknown message '{ref}'"
                        )

    def _check_field_reference(self, message: MessageDescriptor, fd: FieldDescriptor) -> None:
        if fd.kind in (FieldKind.MESSAGE, FieldKind.ENUM):
            if not fd.type_name:
                raise SchemaParseError(
                    f"Field {message.name}.{fd.name} of kind '{fd.kind.value}' "
                    "has no type_name"
                )
            ref = strip_leading_dot(fd.type_name)
            table = self._messages if fd.kind == FieldKind.MESSAGE else self._enums
            if ref not in table:
                raise SchemaParseError(
                    f"Field {message.name}.{fd.name} references unknown "
                    f"{fd.kind.value} '{fd.type_name}'"
                )
        if fd.is_map and fd.map_key in (
            None, FieldKind.MESSAGE, FieldKind.ENUM, FieldKind.BYTES,
            FieldKind.FLOAT, FieldKind.DOUBLE,
        ):
            raise SchemaParseError(
                f"Map field {message.name}.{fd.name} needs a scalar map_key"
            )

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    @property
    def modules(self) -> dict[str, ModuleOptions]:
        """Per-module command options declared by the loaded documents."""
        return dict(self._modules)

    def services(self) -> list[ServiceDescriptor]:
        return list(self._services.values())

    def service(self, name: str) -> ServiceDescriptor:
        try:
            return self._services[strip_leading_dot(name)]
        except KeyError:
            raise SchemaParseError(f"Unknown service '{name}'") from None

    def has_service(self, name: str) -> bool:
        return strip_leading_dot(name) in self._services

    def method(self, service: str, name: str) -> MethodDescriptor:
        method = self.service(service).method(name)
        if method is None:
            raise SchemaParseError(f"Service '{service}' has no method '{name}'")
        return method

    def message(self, name: str) -> MessageDescriptor:
        try:
            return self._messages[strip_leading_dot(name)]
        except KeyError:
            raise SchemaParseError(f"Unknown message '{name}'") from None

    def has_message(self, name: str) -> bool:
        return strip_leading_dot(name) in self._messages

    def enum(self, name: str) -> EnumDescriptor:
        try:
            return self._enums[strip_leading_dot(name)]
        except KeyError:
            raise SchemaParseError(f"Unknown enum '{name}'") from None

    def input_of(self, method: MethodDescriptor) -> MessageDescriptor:
        return self.message(method.input_type)

    def output_of(self, method: MethodDescriptor) -> MessageDescriptor:
        return self.message(method.output_type)

    def signer_field(self, message: MessageDescriptor) -> Optional[FieldDescriptor]:
        """Return the single signer field of *message*, or ``None``.

        Raises:
            ConfigurationError: If the message declares more than one signer.
        """
        if not message.signer:
            return None
        if len(message.signer) > 1:
            raise ConfigurationError(
                f"Message '{message.name}' declares {len(message.signer)} signers "
                f"({', '.join(message.signer)}); only one signer is supported"
            )
        return message.field(message.signer[0])

    def field_path(self, message: MessageDescriptor, path: str) -> Optional[list[FieldDescriptor]]:
        """Resolve a dotted *path* into the chain of fields it walks.

        Every segment but the last must be a singular message field.  Returns
        ``None`` when any segment does not exist or cannot be traversed.

        Example::

            >>> [f.name for f in registry.field_path(msg, "permissions.level")]
            ['permissions', 'level']
        """
        chain: list[FieldDescriptor] = []
        current: Optional[MessageDescriptor] = message
        segments = path.split(".")
        for index, segment in enumerate(segments):
            if current is None:
                return None
            fd = current.field(segment)
            if fd is None:
                return None
            chain.append(fd)
            is_last = index == len(segments) - 1
            if is_last:
                break
            if not fd.is_message or fd.is_repeated or fd.is_map:
                return None
            current = self.message(fd.type_name or "")
        return chain
