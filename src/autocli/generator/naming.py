"""Naming conventions shared by the option resolver and the command tree builder.

Three spellings of every name appear in a generated CLI:

* **command / flag names** -- lower kebab case (``AuthorizeCircuitBreaker``
  -> ``authorize-circuit-breaker``, ``limit_type_urls`` -> ``limit-type-urls``).
* **Python parameter names** -- valid identifiers for the dynamically built
  command functions (``from`` -> ``from_``).
* **module names** -- the package segment of a service name that is not a
  version (``cosmos.bank.v1beta1.Query`` -> ``bank``).
"""

from __future__ import annotations

import keyword
import re

_INVALID_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")
_VERSION_SEGMENT_RE = re.compile(r"^v\d+((alpha|beta)\d*)?$")


def to_kebab(name: str) -> str:
    """Split *name* at case transitions and separators, join with ``-``, lower-case.

    Example::

        >>> to_kebab("AuthorizeCircuitBreaker")
        'authorize-circuit-breaker'
        >>> to_kebab("limit_type_urls")
        'limit-type-urls'
        >>> to_kebab("GetTxsEvent")
        'get-txs-event'
    """
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", result)
    result = result.replace("_", "-").replace(".", "-").replace(" ", "-")
    return re.sub(r"-+", "-", result).strip("-").lower()


def sanitize_param_name(name: str) -> str:
    """Convert a field or flag name to a valid Python identifier.

    CamelCase boundaries become underscores, separators are replaced,
    a leading digit is prefixed with ``p`` and Python keywords get a
    trailing underscore (``from`` -> ``from_``).

    Example::

        >>> sanitize_param_name("limit-type-urls")
        'limit_type_urls'
        >>> sanitize_param_name("from")
        'from_'
    """
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", result)
    result = result.lower().replace("-", "_").replace(".", "_")
    result = _INVALID_IDENT_RE.sub("_", result)
    result = re.sub(r"_+", "_", result).strip("_")
    if not result:
        result = "param"
    if result[0].isdigit():
        result = f"p{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result


def default_module_name(service_name: str) -> str:
    """Derive a module name from a fully-qualified service name.

    The service segment and any version segments are dropped and the last
    remaining package segment is used.

    Example::

        >>> default_module_name("cosmos.bank.v1beta1.Query")
        'bank'
        >>> default_module_name("cosmos.circuit.v1.Msg")
        'circuit'
    """
    segments = service_name.lstrip(".").split(".")[:-1]
    packages = [s for s in segments if not _VERSION_SEGMENT_RE.match(s)]
    if not packages:
        return to_kebab(service_name.rsplit(".", 1)[-1])
    return to_kebab(packages[-1])


def humanize(name: str) -> str:
    """Turn a group slug into a readable label (``"circuit"`` -> ``"Circuit."``)."""
    return name.replace("-", " ").replace("_", " ").capitalize() + "."
