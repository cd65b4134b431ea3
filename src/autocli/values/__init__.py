"""Typed values -- dynamic messages, token coercion and request assembly."""

from autocli.values.assembler import assemble_request
from autocli.values.coerce import ValueCoercer, enum_choices, value_hint
from autocli.values.message import DynamicMessage

__all__ = [
    "DynamicMessage",
    "ValueCoercer",
    "assemble_request",
    "enum_choices",
    "value_hint",
]
