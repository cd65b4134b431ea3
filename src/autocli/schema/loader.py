"""Load schema documents from a URL, local file, or stdin.

This module handles all I/O for fetching raw schema documents and converting
them into Python dictionaries.  It supports both JSON and YAML formats with
automatic format detection, then validates the result into a
:class:`~autocli.models.SchemaDocument`.

The public functions are:

* :func:`load_schema` -- Load and parse a document from any supported source.
* :func:`parse_schema_document` -- Validate a raw dict into a
  :class:`~autocli.models.SchemaDocument`.
* :func:`load_schema_document` -- Both of the above in one call.

A schema document looks like::

    app_version: "0.50.0"
    enums:
      - name: cosmos.gov.v1.VoteOption
        values: [{name: VOTE_OPTION_YES, number: 1}]
    messages:
      - name: cosmos.bank.v1beta1.MsgSend
        signer: [from_address]
        fields:
          - {name: from_address, kind: string, scalar: cosmos.AddressString}
    services:
      - name: cosmos.bank.v1beta1.Msg
        kind: tx
        methods:
          - {name: Send, input_type: cosmos.bank.v1beta1.MsgSend,
             output_type: cosmos.bank.v1beta1.MsgSendResponse}
    modules:
      bank:
        tx: {service: cosmos.bank.v1beta1.Msg}
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import ValidationError

from autocli.exceptions import SchemaParseError
from autocli.models import SchemaDocument


def load_schema(source: str) -> dict[str, Any]:
    """Load a schema document from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path, or '-' for stdin.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SchemaParseError: If the source cannot be loaded or parsed.
    """
    if source == "-":
        return _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        return _load_from_url(source)
    else:
        return _load_from_file(source)


def parse_schema_document(raw: dict[str, Any]) -> SchemaDocument:
    """Validate *raw* into a :class:`~autocli.models.SchemaDocument`.

    Raises:
        SchemaParseError: If the document does not match the expected shape.
    """
    try:
        return SchemaDocument.model_validate(raw)
    except ValidationError as exc:
        raise SchemaParseError(f"Invalid schema document: {exc}") from exc


def load_schema_document(source: str) -> SchemaDocument:
    """Load *source* and validate it into a :class:`~autocli.models.SchemaDocument`."""
    return parse_schema_document(load_schema(source))


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SchemaParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SchemaParseError("No input received from stdin")

    return _parse_content(content, hint="stdin")


def _load_from_url(url: str) -> dict[str, Any]:
    """Fetch a document from URL. Supports JSON and YAML responses."""
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SchemaParseError(
            f"HTTP {exc.response.status_code} fetching schema from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SchemaParseError(f"Failed to fetch schema from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"

    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise SchemaParseError(f"Schema file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaParseError(f"Failed to read schema file {path}: {exc}") from exc

    if not content.strip():
        raise SchemaParseError(f"Schema file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Raises:
        SchemaParseError: If the content cannot be parsed as either format.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
            if not isinstance(result, dict):
                raise SchemaParseError(
                    "Schema must be a JSON/YAML object (got "
                    f"{type(result).__name__})"
                )
            return result
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SchemaParseError(f"Invalid JSON: {exc}") from exc

    try:
        result = yaml.safe_load(content)
        if not isinstance(result, dict):
            raise SchemaParseError(
                "Schema must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result
    except yaml.YAMLError as exc:
        yaml_error = exc

    msg = "Failed to parse schema as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise SchemaParseError(msg)
