"""Textual encodings of the well-known message types.

Durations and timestamps are stored as ``seconds``/``nanos`` pairs, exactly
like their protobuf counterparts, and rendered with the proto3 JSON mapping
(``"1.500s"``, ``"2024-05-01T12:00:00Z"``).  On the command line they accept
friendlier spellings:

* Duration: Go-style (``1h30m``, ``250ms``, ``1.5s``), ISO-8601 (``PT90S``)
  or a plain number of seconds.
* Timestamp: RFC 3339 (``2024-05-01T12:00:00Z``) or integer Unix seconds.

Coins are ``<amount><denom>`` strings such as ``10stake`` (integer amount) or
``1.5stake`` for decimal coins.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import TypeAdapter, ValidationError

_NANOS_PER_SECOND = 1_000_000_000

_GO_UNITS: dict[str, Decimal] = {
    "ns": Decimal(1),
    "us": Decimal(1_000),
    "µs": Decimal(1_000),
    "ms": Decimal(1_000_000),
    "s": Decimal(_NANOS_PER_SECOND),
    "m": Decimal(60 * _NANOS_PER_SECOND),
    "h": Decimal(3600 * _NANOS_PER_SECOND),
}

_GO_DURATION_RE = re.compile(r"^([+-])?((?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|ms|s|m|h))+)$")
_GO_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")
_UNIX_RE = re.compile(r"^[+-]?\d+$")

_COIN_RE = re.compile(r"^\s*(\d+)\s*([a-zA-Z][a-zA-Z0-9/:._-]{1,127})\s*$")
_DEC_COIN_RE = re.compile(
    r"^\s*(\d+(?:\.\d+)?|\.\d+)\s*([a-zA-Z][a-zA-Z0-9/:._-]{1,127})\s*$"
)

_timedelta_adapter = TypeAdapter(timedelta)
_datetime_adapter = TypeAdapter(datetime)


def _split_nanos(total: int) -> tuple[int, int]:
    """Split a signed nanosecond count into proto ``(seconds, nanos)`` (same sign)."""
    sign = -1 if total < 0 else 1
    seconds, nanos = divmod(abs(total), _NANOS_PER_SECOND)
    return sign * seconds, sign * nanos


def parse_duration(text: str) -> tuple[int, int]:
    """Parse a duration into ``(seconds, nanos)``.

    Raises:
        ValueError: If *text* is not a recognised duration spelling.
    """
    token = text.strip()
    if not token:
        raise ValueError("empty duration")

    match = _GO_DURATION_RE.match(token)
    if match:
        total = Decimal(0)
        for number, unit in _GO_PART_RE.findall(match.group(2)):
            total += Decimal(number) * _GO_UNITS[unit]
        if match.group(1) == "-":
            total = -total
        return _split_nanos(int(total))

    if _DECIMAL_RE.match(token):
        try:
            return _split_nanos(int(Decimal(token) * _NANOS_PER_SECOND))
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration '{text}'") from exc

    if token.lstrip("+-").upper().startswith("P"):
        try:
            delta = _timedelta_adapter.validate_python(token)
        except ValidationError as exc:
            raise ValueError(f"invalid ISO-8601 duration '{text}'") from exc
        total_micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
        return _split_nanos(total_micros * 1_000)

    raise ValueError(
        f"invalid duration '{text}' (expected e.g. 1h30m, 2.5s, PT90S or seconds)"
    )


def format_duration(seconds: int, nanos: int) -> str:
    """Render a duration with the proto3 JSON mapping (``"1.500s"``)."""
    negative = seconds < 0 or nanos < 0
    seconds, nanos = abs(seconds), abs(nanos)
    sign = "-" if negative else ""
    if nanos == 0:
        return f"{sign}{seconds}s"
    frac = f"{nanos:09d}"
    if frac.endswith("000000"):
        frac = frac[:3]
    elif frac.endswith("000"):
        frac = frac[:6]
    return f"{sign}{seconds}.{frac}s"


def parse_timestamp(text: str) -> tuple[int, int]:
    """Parse an RFC 3339 timestamp or integer Unix seconds into ``(seconds, nanos)``.

    Timestamps without an offset are taken as UTC.

    Raises:
        ValueError: If *text* is neither form.
    """
    token = text.strip()
    if _UNIX_RE.match(token):
        return int(token), 0
    try:
        value = _datetime_adapter.validate_python(token)
    except ValidationError as exc:
        raise ValueError(
            f"invalid timestamp '{text}' (expected RFC 3339 or Unix seconds)"
        ) from exc
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
    delta = value - epoch
    seconds = delta.days * 86_400 + delta.seconds
    return seconds, delta.microseconds * 1_000


def format_timestamp(seconds: int, nanos: int) -> str:
    """Render a timestamp as RFC 3339 in UTC with a ``Z`` suffix."""
    moment = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=seconds)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if nanos:
        frac = f"{nanos:09d}"
        if frac.endswith("000000"):
            frac = frac[:3]
        elif frac.endswith("000"):
            frac = frac[:6]
        text = f"{text}.{frac}"
    return f"{text}Z"


def parse_coin(text: str, decimal: bool = False) -> tuple[str, str]:
    """Parse ``10stake`` into ``(amount, denom)``.

    Raises:
        ValueError: If *text* is not an amount immediately followed by a denom.
    """
    match = (_DEC_COIN_RE if decimal else _COIN_RE).match(text)
    if not match:
        kind = "decimal coin" if decimal else "coin"
        raise ValueError(f"invalid {kind} '{text}' (expected e.g. 10stake)")
    return match.group(1), match.group(2)


def format_coin(amount: Optional[str], denom: Optional[str]) -> str:
    return f"{amount or '0'}{denom or ''}"
