"""Schema-driven dynamic messages.

A :class:`DynamicMessage` is an instance of any
:class:`~autocli.models.MessageDescriptor`: a field-name -> value store that
validates names against the descriptor and knows each field's zero value.
Nothing here is specific to a concrete message type; a single generic
:meth:`DynamicMessage.set_path` sets values at dotted paths such as
``permissions.level``, creating intermediate messages on the way.

Value representation:

* integers, floats, bools, strings -> ``int``/``float``/``bool``/``str``
* bytes -> ``bytes``
* enums -> the ``int`` number
* messages -> nested :class:`DynamicMessage`
* repeated -> ``list``; maps -> ``dict``
* ``google.protobuf.Any`` fields hold the packed message itself

:meth:`DynamicMessage.to_dict` renders with the proto3 JSON mapping, keeping
the original (snake_case) field names.
"""

from __future__ import annotations

import base64
import copy
from typing import TYPE_CHECKING, Any, Optional

from autocli.models import FieldDescriptor, FieldKind, MessageDescriptor
from autocli.schema import wellknown as wk
from autocli.values.wellknown import format_duration, format_timestamp

if TYPE_CHECKING:
    from autocli.schema.registry import SchemaRegistry


INT64_KINDS = frozenset({
    FieldKind.INT64,
    FieldKind.UINT64,
    FieldKind.SINT64,
    FieldKind.FIXED64,
    FieldKind.SFIXED64,
})

_ZERO: dict[FieldKind, Any] = {
    FieldKind.DOUBLE: 0.0,
    FieldKind.FLOAT: 0.0,
    FieldKind.BOOL: False,
    FieldKind.STRING: "",
    FieldKind.BYTES: b"",
    FieldKind.ENUM: 0,
}


def zero_value(field: FieldDescriptor) -> Any:
    """Return the zero value of *field* (``None`` for unset singular messages)."""
    if field.is_repeated:
        return []
    if field.is_map:
        return {}
    if field.kind == FieldKind.MESSAGE:
        return None
    return _ZERO.get(field.kind, 0)


class DynamicMessage:
    """A mutable instance of a message descriptor.

    Args:
        descriptor: The message schema this instance conforms to.
        registry: Registry used to resolve nested message and enum types.
        values: Optional initial ``field name -> value`` mapping.

    Example::

        msg = DynamicMessage(registry.message("cosmos.circuit.v1.MsgAuthorizeCircuitBreaker"), registry)
        msg.set_path("permissions.level", 3)
        msg.to_dict()   # {"permissions": {"level": "LEVEL_SUPER_ADMIN"}}
    """

    __slots__ = ("_descriptor", "_registry", "_values")

    def __init__(
        self,
        descriptor: MessageDescriptor,
        registry: SchemaRegistry,
        values: Optional[dict[str, Any]] = None,
    ) -> None:
        self._descriptor = descriptor
        self._registry = registry
        self._values: dict[str, Any] = {}
        for name, value in (values or {}).items():
            self.set(name, value)

    @property
    def descriptor(self) -> MessageDescriptor:
        return self._descriptor

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def type_name(self) -> str:
        return self._descriptor.name

    def _field(self, name: str) -> FieldDescriptor:
        fd = self._descriptor.field(name)
        if fd is None:
            raise KeyError(f"{self._descriptor.name} has no field '{name}'")
        return fd

    # ------------------------------------------------------------------ #
    # Field access
    # ------------------------------------------------------------------ #

    def has(self, name: str) -> bool:
        self._field(name)
        return name in self._values

    def get(self, name: str) -> Any:
        fd = self._field(name)
        if name in self._values:
            return self._values[name]
        return zero_value(fd)

    def set(self, name: str, value: Any) -> None:
        self._field(name)
        self._values[name] = value

    def clear(self, name: str) -> None:
        self._field(name)
        self._values.pop(name, None)

    def fields_set(self) -> list[str]:
        """Names of explicitly set fields, in descriptor order."""
        return [fd.name for fd in self._descriptor.fields if fd.name in self._values]

    def set_path(self, path: str, value: Any) -> None:
        """Set *value* at a dotted *path*, creating intermediate messages.

        Raises:
            KeyError: If a segment does not name a field.
            TypeError: If an intermediate segment is not a singular message.
        """
        segments = path.split(".")
        target = self
        for segment in segments[:-1]:
            fd = target._field(segment)
            if not fd.is_message or fd.is_repeated or fd.is_map:
                raise TypeError(
                    f"Cannot traverse '{segment}' in '{path}': not a singular message field"
                )
            child = target._values.get(segment)
            if child is None:
                child = DynamicMessage(
                    self._registry.message(fd.type_name or ""), self._registry,
                )
                target._values[segment] = child
            target = child
        target.set(segments[-1], value)

    def get_path(self, path: str) -> Any:
        """Return the value at a dotted *path* (zero value when unset)."""
        segments = path.split(".")
        target = self
        for segment in segments[:-1]:
            child = target.get(segment)
            if child is None:
                chain = self._registry.field_path(self._descriptor, path)
                return zero_value(chain[-1]) if chain else None
            target = child
        return target.get(segments[-1])

    @classmethod
    def from_dict(
        cls,
        descriptor: MessageDescriptor,
        registry: SchemaRegistry,
        data: dict[str, Any],
    ) -> DynamicMessage:
        """Build a message from its proto3 JSON form (the inverse of :meth:`to_dict`).

        Raises:
            CoercionError: If *data* does not match the descriptor.
        """
        from autocli.values.coerce import ValueCoercer

        return ValueCoercer(registry).decode_json(data, descriptor)

    def copy(self) -> DynamicMessage:
        return copy.deepcopy(self)

    def __deepcopy__(self, memo: dict[int, Any]) -> DynamicMessage:
        # Nested messages share the registry; only values are copied.
        return DynamicMessage(self._descriptor, self._registry, copy.deepcopy(self._values, memo))

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #

    def to_dict(self, include_defaults: bool = False) -> dict[str, Any]:
        """Render with the proto3 JSON mapping.

        64-bit integers become strings, bytes become base64, enums become
        their symbolic names, durations and timestamps their string forms and
        ``Any`` values gain an ``@type`` key.  Zero values are omitted unless
        *include_defaults* is set.
        """
        result: dict[str, Any] = {}
        for fd in self._descriptor.fields:
            if fd.name in self._values:
                value = self._values[fd.name]
            elif include_defaults:
                value = zero_value(fd)
            else:
                continue
            if not include_defaults and value == zero_value(fd):
                continue
            result[fd.name] = self._render_field(fd, value, include_defaults)
        return result

    def _render_field(self, fd: FieldDescriptor, value: Any, include_defaults: bool) -> Any:
        if value is None:
            return None
        if fd.is_repeated:
            return [self._render_single(fd, v, include_defaults) for v in value]
        if fd.is_map:
            return {str(k): self._render_single(fd, v, include_defaults) for k, v in value.items()}
        return self._render_single(fd, value, include_defaults)

    def _render_single(self, fd: FieldDescriptor, value: Any, include_defaults: bool) -> Any:
        if fd.kind in INT64_KINDS:
            return str(value)
        if fd.kind == FieldKind.BYTES:
            return base64.b64encode(value).decode("ascii")
        if fd.kind == FieldKind.ENUM:
            return enum_name(self._registry, fd.type_name or "", value)
        if fd.kind == FieldKind.MESSAGE:
            return render_message(value, include_defaults, packed=fd.type_name == wk.ANY)
        return value

    # ------------------------------------------------------------------ #
    # Dunder
    # ------------------------------------------------------------------ #

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DynamicMessage):
            return NotImplemented
        return (
            self._descriptor.name == other._descriptor.name
            and self.to_dict() == other.to_dict()
        )

    def __repr__(self) -> str:
        return f"DynamicMessage({self._descriptor.name}, {self.to_dict()!r})"


def enum_name(registry: SchemaRegistry, type_name: str, number: int) -> Any:
    """Return the symbolic name of enum value *number*, or the number when unknown."""
    for ev in registry.enum(type_name).values:
        if ev.number == number:
            return ev.name
    return number


def render_message(message: DynamicMessage, include_defaults: bool = False, packed: bool = False) -> Any:
    """Render a nested message, applying the special well-known JSON forms."""
    name = message.type_name
    if name == wk.DURATION:
        return format_duration(message.get("seconds"), message.get("nanos"))
    if name == wk.TIMESTAMP:
        return format_timestamp(message.get("seconds"), message.get("nanos"))
    rendered = message.to_dict(include_defaults)
    if packed and name != wk.ANY:
        return {"@type": f"/{name}", **rendered}
    return rendered
