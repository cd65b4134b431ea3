"""Schema source -- load service schema documents and reflect over them.

This sub-package is the first half of the autocli pipeline: turning a
JSON/YAML schema document (local file, URL or stdin) into a
:class:`~autocli.schema.registry.SchemaRegistry` that the generator and the
runtime query.

Typical usage::

    from autocli.schema import SchemaRegistry, load_schema_document

    registry = SchemaRegistry(load_schema_document("chain.yaml"))
    for service in registry.services():
        print(service.name, [m.name for m in service.methods])

Sub-modules:

* :mod:`~autocli.schema.loader` -- I/O layer (URL, file, stdin) plus format
  detection and document validation.
* :mod:`~autocli.schema.registry` -- Name-indexed descriptor lookups and
  reference checking.
* :mod:`~autocli.schema.wellknown` -- Built-in descriptors (durations,
  timestamps, coins, ``Any``, the governance proposal envelope).
"""

from autocli.schema.loader import load_schema, load_schema_document, parse_schema_document
from autocli.schema.registry import SchemaRegistry

__all__ = [
    "SchemaRegistry",
    "load_schema",
    "load_schema_document",
    "parse_schema_document",
]
