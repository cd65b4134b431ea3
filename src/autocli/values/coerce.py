"""Value coercion engine -- turn raw command-line tokens into typed field values.

Every field kind has exactly one parser, registered in a dispatch table keyed
by :class:`~autocli.models.FieldKind` (scalars) or by message full name
(well-known messages with their own textual form).  Cardinality is handled
once, around the element parsers:

* **singular** -- exactly one token.
* **repeated** -- any number of flag occurrences; scalar and coin elements
  may also be comma separated within one token (``a,b,"c,d"`` with CSV
  quoting).  A ``varargs`` positional slot passes one element per token and
  never splits on commas.
* **map** -- ``key=value`` pairs, comma separated or repeated.

Textual encodings:

=============  ============================================================
kind           accepted text
=============  ============================================================
integers       strict base-10, sign only for signed kinds, range checked
float/double   decimal literal (``1.5``, ``-2e3``)
bool           ``true/false/t/f/yes/no/y/n/on/off/1/0`` (any case)
string         verbatim; address-annotated strings also accept key names
bytes          standard base64 (padding optional, URL-safe alphabet accepted)
enum           full name, name without the enum prefix, or the number
message        JSON object (proto3 JSON mapping) or ``@file`` (JSON/YAML)
Duration       ``1h30m``, ``2.5s``, ``PT90S`` or seconds
Timestamp      RFC 3339 or Unix seconds
Coin/DecCoin   ``10stake`` / ``1.5stake``
=============  ============================================================

:meth:`ValueCoercer.render` is the inverse: it produces tokens that coerce
back to the same value.
"""

from __future__ import annotations

import base64
import binascii
import csv
import io
import json
import os
import re
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Union

import yaml

from autocli.exceptions import CoercionError, SignerError
from autocli.models import (
    EnumDescriptor,
    FieldDescriptor,
    FieldKind,
    MessageDescriptor,
)
from autocli.schema import wellknown as wk
from autocli.schema.registry import SchemaRegistry
from autocli.values.message import DynamicMessage, enum_name, render_message
from autocli.values.wellknown import (
    format_coin,
    format_duration,
    format_timestamp,
    parse_coin,
    parse_duration,
    parse_timestamp,
)

AddressResolver = Callable[[str], str]
"""Maps a key name or literal address to an address; raises ``SignerError``."""

_SIGNED_INT_RE = re.compile(r"^[+-]?\d+$")
_UNSIGNED_INT_RE = re.compile(r"^\+?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

_INT32 = (-(2**31), 2**31 - 1)
_UINT32 = (0, 2**32 - 1)
_INT64 = (-(2**63), 2**63 - 1)
_UINT64 = (0, 2**64 - 1)

_INT_RANGES: dict[FieldKind, tuple[int, int]] = {
    FieldKind.INT32: _INT32,
    FieldKind.SINT32: _INT32,
    FieldKind.SFIXED32: _INT32,
    FieldKind.UINT32: _UINT32,
    FieldKind.FIXED32: _UINT32,
    FieldKind.INT64: _INT64,
    FieldKind.SINT64: _INT64,
    FieldKind.SFIXED64: _INT64,
    FieldKind.UINT64: _UINT64,
    FieldKind.FIXED64: _UINT64,
}

_FLOAT32_MAX = 3.4028234663852886e38

_BOOL_TOKENS: dict[str, bool] = {
    "true": True, "t": True, "yes": True, "y": True, "on": True, "1": True,
    "false": False, "f": False, "no": False, "n": False, "off": False, "0": False,
}

# Messages whose repeated flag values may be comma separated like scalars.
_SPLITTABLE_MESSAGES = frozenset({wk.COIN, wk.DEC_COIN})


class ValueCoercer:
    """Convert raw tokens into values for a :class:`~autocli.models.FieldDescriptor`.

    Args:
        registry: Registry used to resolve enum and message types.
        address_resolver: Optional callable used for address-annotated string
            fields so that key names are accepted in place of addresses.

    Example::

        coercer = ValueCoercer(registry)
        coercer.coerce(["1h30m"], duration_field)       # DynamicMessage(Duration)
        coercer.coerce(["a,b", "c"], repeated_string)   # ["a", "b", "c"]
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        address_resolver: Optional[AddressResolver] = None,
    ) -> None:
        self._registry = registry
        self._address_resolver = address_resolver
        self._scalar_parsers: dict[FieldKind, Callable[[str, FieldDescriptor], Any]] = {
            FieldKind.BOOL: self._parse_bool,
            FieldKind.STRING: self._parse_string,
            FieldKind.BYTES: self._parse_bytes,
            FieldKind.ENUM: self._parse_enum,
            FieldKind.FLOAT: self._parse_float,
            FieldKind.DOUBLE: self._parse_float,
        }
        for kind in _INT_RANGES:
            self._scalar_parsers[kind] = self._parse_int
        self._message_parsers: dict[str, Callable[[str, MessageDescriptor], DynamicMessage]] = {
            wk.DURATION: self._parse_duration,
            wk.TIMESTAMP: self._parse_timestamp,
            wk.COIN: self._parse_coin,
            wk.DEC_COIN: self._parse_dec_coin,
        }

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def coerce(
        self,
        raw: Union[str, Sequence[str]],
        field: FieldDescriptor,
        varargs: bool = False,
    ) -> Any:
        """Coerce *raw* (one token or a sequence of tokens) for *field*.

        Raises:
            CoercionError: If any token is malformed for the field's kind.
        """
        tokens = [raw] if isinstance(raw, str) else list(raw)
        if field.is_map:
            return self._coerce_map(tokens, field)
        if field.is_repeated:
            if varargs:
                return [self.coerce_element(token, field) for token in tokens]
            return [
                self.coerce_element(part, field)
                for token in tokens
                for part in self._split(token, field)
            ]
        if len(tokens) != 1:
            raise CoercionError(f"expected a single value, got {len(tokens)}")
        return self.coerce_element(tokens[0], field)

    def coerce_element(self, token: str, field: FieldDescriptor) -> Any:
        """Coerce a single token for one element of *field* (ignores cardinality)."""
        if field.kind == FieldKind.MESSAGE:
            return self._coerce_message(token, self._registry.message(field.type_name or ""))
        return self._scalar_parsers[field.kind](token, field)

    def decode_json(self, data: Any, message: MessageDescriptor) -> DynamicMessage:
        """Decode a JSON-like value into a message, coercing field by field.

        Accepts the proto3 JSON mapping: 64-bit integers and enums may be
        strings, bytes are base64 strings, well-known types use their string
        forms and ``Any`` values carry an ``@type`` key.

        Raises:
            CoercionError: On unknown fields or values of the wrong shape.
        """
        custom = self._message_parsers.get(message.name)
        if custom is not None and isinstance(data, str):
            return custom(data, message)
        if message.name == wk.ANY:
            return self._decode_any(data)
        if not isinstance(data, dict):
            raise CoercionError(
                f"expected a JSON object for {message.name}, got {type(data).__name__}"
            )

        result = DynamicMessage(message, self._registry)
        for key, value in data.items():
            fd = message.field(key) or _field_by_json_name(message, key)
            if fd is None:
                raise CoercionError(f"unknown field '{key}' in {message.name}")
            if value is None:
                continue
            result.set(fd.name, self._decode_json_field(value, fd))
        return result

    def render(self, value: Any, field: FieldDescriptor, varargs: bool = False) -> list[str]:
        """Render *value* back into tokens that :meth:`coerce` accepts."""
        if field.is_map:
            if not value:
                return []
            pairs = [f"{key}={self.render_element(item, field)}" for key, item in value.items()]
            return [_csv_join(pairs)]
        if field.is_repeated:
            rendered = [self.render_element(item, field) for item in value]
            if varargs or (field.is_message and field.type_name not in _SPLITTABLE_MESSAGES):
                return rendered
            return [_csv_join([item]) for item in rendered]
        return [self.render_element(value, field)]

    def render_element(self, value: Any, field: FieldDescriptor) -> str:
        if field.kind == FieldKind.BOOL:
            return "true" if value else "false"
        if field.kind == FieldKind.BYTES:
            return base64.b64encode(value).decode("ascii")
        if field.kind == FieldKind.ENUM:
            return str(enum_name(self._registry, field.type_name or "", value))
        if field.kind == FieldKind.MESSAGE:
            name = value.type_name
            if name == wk.DURATION:
                return format_duration(value.get("seconds"), value.get("nanos"))
            if name == wk.TIMESTAMP:
                return format_timestamp(value.get("seconds"), value.get("nanos"))
            if name in _SPLITTABLE_MESSAGES:
                return format_coin(value.get("amount"), value.get("denom"))
            return json.dumps(render_message(value, packed=field.type_name == wk.ANY))
        return str(value)

    # ------------------------------------------------------------------ #
    # Cardinality helpers
    # ------------------------------------------------------------------ #

    def _split(self, token: str, field: FieldDescriptor) -> list[str]:
        if field.is_message and field.type_name not in _SPLITTABLE_MESSAGES:
            return [token]
        if token == "":
            return []
        return next(csv.reader([token]))

    def _coerce_map(self, tokens: list[str], field: FieldDescriptor) -> dict[Any, Any]:
        key_field = FieldDescriptor(name=field.name, kind=field.map_key or FieldKind.STRING)
        result: dict[Any, Any] = {}
        for token in tokens:
            for pair in self._split(token, key_field):
                key, sep, value = pair.partition("=")
                if not sep:
                    raise CoercionError(f"invalid map entry '{pair}' (expected key=value)")
                result[self.coerce_element(key, key_field)] = self.coerce_element(value, field)
        return result

    # ------------------------------------------------------------------ #
    # Scalar parsers
    # ------------------------------------------------------------------ #

    def _parse_int(self, token: str, field: FieldDescriptor) -> int:
        text = token.strip()
        low, high = _INT_RANGES[field.kind]
        pattern = _UNSIGNED_INT_RE if low == 0 else _SIGNED_INT_RE
        if not pattern.match(text):
            raise CoercionError(f"'{token}' is not a valid {field.kind.value}")
        value = int(text, 10)
        if not low <= value <= high:
            raise CoercionError(
                f"{text} is out of range for {field.kind.value} ({low}..{high})"
            )
        return value

    def _parse_float(self, token: str, field: FieldDescriptor) -> float:
        text = token.strip()
        if not _DECIMAL_RE.match(text):
            raise CoercionError(f"'{token}' is not a valid {field.kind.value}")
        value = float(text)
        limit = _FLOAT32_MAX if field.kind == FieldKind.FLOAT else float("inf")
        if abs(value) > limit or value in (float("inf"), float("-inf")):
            raise CoercionError(f"{text} is out of range for {field.kind.value}")
        return value

    def _parse_bool(self, token: str, field: FieldDescriptor) -> bool:
        try:
            return _BOOL_TOKENS[token.strip().lower()]
        except KeyError:
            raise CoercionError(
                f"'{token}' is not a boolean (use true/false, yes/no, on/off or 1/0)"
            ) from None

    def _parse_string(self, token: str, field: FieldDescriptor) -> str:
        if field.scalar in wk.ADDRESS_SCALARS and self._address_resolver is not None:
            try:
                return self._address_resolver(token)
            except SignerError as exc:
                raise CoercionError(str(exc)) from exc
        return token

    def _parse_bytes(self, token: str, field: FieldDescriptor) -> bytes:
        text = token.strip().translate(str.maketrans("-_", "+/"))
        text += "=" * (-len(text) % 4)
        try:
            return base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError):
            raise CoercionError(f"'{token}' is not valid base64") from None

    def _parse_enum(self, token: str, field: FieldDescriptor) -> int:
        enum = self._registry.enum(field.type_name or "")
        text = token.strip()
        if _SIGNED_INT_RE.match(text):
            number = int(text)
            if any(ev.number == number for ev in enum.values):
                return number
        else:
            wanted = text.upper().replace("-", "_")
            prefix = enum_prefix(enum)
            for ev in enum.values:
                name = ev.name.upper()
                if name == wanted or (prefix and name == prefix + wanted):
                    return ev.number
        raise CoercionError(
            f"invalid value '{token}' for {enum.name} "
            f"(choices: {', '.join(enum_choices(enum))})"
        )

    # ------------------------------------------------------------------ #
    # Message parsers
    # ------------------------------------------------------------------ #

    def _coerce_message(self, token: str, message: MessageDescriptor) -> DynamicMessage:
        text = token.strip()
        custom = self._message_parsers.get(message.name)
        if custom is not None and not text.startswith(("{", "@")):
            return custom(text, message)
        return self.decode_json(self._load_structured(text), message)

    def _load_structured(self, text: str) -> Any:
        if text.startswith("@"):
            path = Path(os.path.expanduser(text[1:]))
            if not path.is_file():
                raise CoercionError(f"file not found: {path}")
            try:
                return yaml.safe_load(path.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError) as exc:
                raise CoercionError(f"cannot read {path}: {exc}") from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise CoercionError(f"invalid JSON: {exc.msg} (at position {exc.pos})") from exc

    def _parse_duration(self, text: str, message: MessageDescriptor) -> DynamicMessage:
        try:
            seconds, nanos = parse_duration(text)
        except ValueError as exc:
            raise CoercionError(str(exc)) from exc
        return DynamicMessage(message, self._registry, {"seconds": seconds, "nanos": nanos})

    def _parse_timestamp(self, text: str, message: MessageDescriptor) -> DynamicMessage:
        try:
            seconds, nanos = parse_timestamp(text)
        except ValueError as exc:
            raise CoercionError(str(exc)) from exc
        return DynamicMessage(message, self._registry, {"seconds": seconds, "nanos": nanos})

    def _parse_coin(self, text: str, message: MessageDescriptor) -> DynamicMessage:
        try:
            amount, denom = parse_coin(text)
        except ValueError as exc:
            raise CoercionError(str(exc)) from exc
        return DynamicMessage(message, self._registry, {"denom": denom, "amount": amount})

    def _parse_dec_coin(self, text: str, message: MessageDescriptor) -> DynamicMessage:
        try:
            amount, denom = parse_coin(text, decimal=True)
        except ValueError as exc:
            raise CoercionError(str(exc)) from exc
        return DynamicMessage(message, self._registry, {"denom": denom, "amount": amount})

    # ------------------------------------------------------------------ #
    # JSON decoding
    # ------------------------------------------------------------------ #

    def _decode_json_field(self, value: Any, fd: FieldDescriptor) -> Any:
        if fd.is_repeated:
            if not isinstance(value, list):
                raise CoercionError(f"field '{fd.name}' expects a JSON array")
            return [self._decode_json_value(item, fd) for item in value]
        if fd.is_map:
            if not isinstance(value, dict):
                raise CoercionError(f"field '{fd.name}' expects a JSON object")
            key_field = FieldDescriptor(name=fd.name, kind=fd.map_key or FieldKind.STRING)
            return {
                self.coerce_element(str(key), key_field): self._decode_json_value(item, fd)
                for key, item in value.items()
            }
        return self._decode_json_value(value, fd)

    def _decode_json_value(self, value: Any, fd: FieldDescriptor) -> Any:
        if fd.kind == FieldKind.MESSAGE:
            return self.decode_json(value, self._registry.message(fd.type_name or ""))
        if isinstance(value, str):
            return self.coerce_element(value, fd)
        if fd.kind == FieldKind.BOOL and isinstance(value, bool):
            return value
        if isinstance(value, bool):
            raise CoercionError(f"field '{fd.name}' does not accept a boolean")
        if fd.kind in _INT_RANGES and isinstance(value, int):
            return self._parse_int(str(value), fd)
        if fd.kind in (FieldKind.FLOAT, FieldKind.DOUBLE) and isinstance(value, (int, float)):
            return self._parse_float(repr(float(value)), fd)
        if fd.kind == FieldKind.ENUM and isinstance(value, int):
            return self._parse_enum(str(value), fd)
        raise CoercionError(f"invalid JSON value {value!r} for field '{fd.name}'")

    def _decode_any(self, data: Any) -> DynamicMessage:
        if not isinstance(data, dict) or not isinstance(data.get("@type"), str):
            raise CoercionError("an Any value needs a JSON object with an '@type' key")
        type_name = data["@type"].rsplit("/", 1)[-1]
        if not self._registry.has_message(type_name):
            raise CoercionError(f"unknown message type '{data['@type']}' in Any")
        message = self._registry.message(type_name)
        body = {key: value for key, value in data.items() if key != "@type"}
        if type_name in self._message_parsers and set(body) == {"value"}:
            return self.decode_json(body["value"], message)
        return self.decode_json(body, message)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def enum_prefix(enum: EnumDescriptor) -> str:
    """Return the common ``UPPER_SNAKE_`` prefix shared by all value names."""
    names = [ev.name.upper() for ev in enum.values]
    if not names:
        return ""
    common = os.path.commonprefix(names)
    cut = common.rfind("_")
    if cut < 0:
        return ""
    prefix = common[: cut + 1]
    if any(len(name) == len(prefix) for name in names):
        return ""
    return prefix


def enum_choices(enum: EnumDescriptor) -> list[str]:
    """Short, lower-kebab names of the enum's values (``VOTE_OPTION_NO`` -> ``no``)."""
    prefix = enum_prefix(enum)
    return [
        ev.name.upper()[len(prefix):].lower().replace("_", "-")
        for ev in enum.values
    ]


def value_hint(field: FieldDescriptor, registry: SchemaRegistry) -> str:
    """Describe the accepted textual form of *field* for help output."""
    if field.kind == FieldKind.ENUM:
        hint = f"choices: {'|'.join(enum_choices(registry.enum(field.type_name or '')))}"
    elif field.kind == FieldKind.MESSAGE:
        hint = {
            wk.DURATION: "duration, e.g. 1h30m",
            wk.TIMESTAMP: "RFC 3339 timestamp",
            wk.COIN: "coin, e.g. 10stake",
            wk.DEC_COIN: "decimal coin, e.g. 1.5stake",
        }.get(field.type_name or "", f"JSON {field.type_name} or @file")
    elif field.kind == FieldKind.BYTES:
        hint = "base64"
    elif field.scalar in wk.ADDRESS_SCALARS:
        hint = "address or key name"
    else:
        hint = field.kind.value
    if field.is_map:
        return f"key=value pairs, values: {hint}"
    if field.is_repeated:
        return f"list of {hint}"
    return hint


def _field_by_json_name(message: MessageDescriptor, key: str) -> Optional[FieldDescriptor]:
    """Find a field by its proto3 JSON (lowerCamelCase) name."""
    for fd in message.fields:
        head, *rest = fd.name.split("_")
        if head + "".join(part.capitalize() for part in rest) == key:
            return fd
    return None


def _csv_join(items: list[str]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="").writerow(items)
    return buffer.getvalue()
