"""Parsers for the compact wire formats of the MegaESP classic API.

Every helper here is pure: it receives the raw text of one reply (or one field
of it) and returns a typed value. Malformed input never raises; it degrades to
``None``/``NaN`` so one broken field cannot spoil a whole reply.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_TRUE_STATES = frozenset({"ON", "1", "TRUE"})
_NOT_AVAILABLE = "NA"

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_WHITESPACE = re.compile(r"\s+")
_INVALID_ID_CHARS = re.compile(r"[^A-Za-z0-9_]+")
_UNDERSCORES = re.compile(r"_+")


@dataclass(frozen=True, slots=True)
class SwitchValue:
    """Decoded ``state[/counter]`` field of a digital port."""

    state: bool
    counter: int | None = None


def _parse_int_prefix(raw: str) -> int | None:
    match = _INT_PREFIX.match(raw)
    if match is None:
        return None
    return int(match.group(1))


def parse_switch_value(raw: str | None) -> SwitchValue:
    """Decode ``ON/12``, ``OFF``, ``1`` and friends."""

    if not raw:
        return SwitchValue(False, None)
    parts = str(raw).split("/")
    state = parts[0].strip().upper() in _TRUE_STATES
    counter = _parse_int_prefix(parts[1]) if len(parts) > 1 else None
    return SwitchValue(state, counter)


def parse_key_value_list(raw: str | None) -> dict[str, str] | None:
    """Decode ``a=1;b=2`` into a mapping, ``None`` for an empty or ``NA`` reply."""

    if not raw or raw.strip().upper() == _NOT_AVAILABLE:
        return None
    return dict(parse_key_value_pairs(raw))


def parse_key_value_pairs(raw: str | None) -> list[tuple[str, str]]:
    """Decode ``name=value;...`` keeping the order the device reported."""

    if not raw or raw.strip().upper() == _NOT_AVAILABLE:
        return []
    pairs: list[tuple[str, str]] = []
    for item in raw.split(";"):
        key, separator, value = item.partition("=")
        key = key.strip()
        if not key:
            continue
        pairs.append((key, value.strip() if separator else ""))
    return pairs


def parse_number(raw: str | float | int | None) -> float:
    """Parse the leading number of ``raw``; anything not finite becomes NaN."""

    if raw is None:
        return math.nan
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = float(raw)
    else:
        match = _FLOAT_PREFIX.match(str(raw))
        if match is None:
            return math.nan
        value = float(match.group(1))
    return value if math.isfinite(value) else math.nan


def round_metric(raw: str | None, decimals: int) -> float | None:
    """Parse ``raw`` and round it to ``decimals`` places, ``None`` if invalid.

    Halves round away from zero (``22.25`` -> ``22.3``), not to even.
    """

    value = parse_number(raw)
    if math.isnan(value):
        return None
    step = Decimal(1).scaleb(-decimals)
    try:
        return float(Decimal(str(value)).quantize(step, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # Too many digits for the decimal context; no fraction left to round.
        return value


def sanitize_id(name: str) -> str:
    """Turn a free-form sensor name into a state-tree identifier segment."""

    text = _WHITESPACE.sub("_", name.strip().lower())
    text = _INVALID_ID_CHARS.sub("_", text)
    return _UNDERSCORES.sub("_", text).strip("_")
