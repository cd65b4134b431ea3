"""Request assembly -- build a schema-conformant request from coerced values."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from autocli.exceptions import CoercionError
from autocli.models import MethodDescriptor
from autocli.schema.registry import SchemaRegistry
from autocli.values.coerce import ValueCoercer
from autocli.values.message import DynamicMessage

logger = logging.getLogger(__name__)


def assemble_request(
    registry: SchemaRegistry,
    method: MethodDescriptor,
    values: Mapping[str, Any],
    coercer: Optional[ValueCoercer] = None,
) -> DynamicMessage:
    """Create the input message of *method* and set each value at its dotted path.

    Intermediate messages are created on demand.  Required top-level fields
    that are neither covered by *values* nor carry a declared default raise
    :class:`~autocli.exceptions.CoercionError`; every other unbound field
    keeps its zero value.

    Args:
        registry: Registry that owns the method's input type.
        method: The method whose request is being built.
        values: ``dotted path -> already coerced value`` mapping.
        coercer: Used to coerce declared textual defaults of required fields.

    Returns:
        A fresh :class:`~autocli.values.message.DynamicMessage`.

    Example::

        request = assemble_request(registry, method, {
            "grantee": "cosmos1abc",
            "permissions.level": 3,
        })
    """
    descriptor = registry.input_of(method)
    request = DynamicMessage(descriptor, registry)

    for path, value in values.items():
        try:
            request.set_path(path, value)
        except (KeyError, TypeError) as exc:
            raise CoercionError(f"cannot set '{path}' on {descriptor.name}: {exc}") from exc

    bound_roots = {path.split(".", 1)[0] for path in values}
    for fd in descriptor.fields:
        if not fd.required or fd.name in bound_roots:
            continue
        if fd.default is None:
            raise CoercionError(f"missing required field '{fd.name}'")
        coercer = coercer or ValueCoercer(registry)
        raw = [str(v) for v in fd.default] if isinstance(fd.default, list) else str(fd.default)
        request.set(fd.name, coercer.coerce(raw, fd))
        logger.debug("Applied declared default for %s.%s", descriptor.name, fd.name)

    return request
