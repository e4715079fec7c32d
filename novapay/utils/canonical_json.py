"""
Canonical serialization of request payloads for signature stability.

This module turns a payload mapping into the exact byte sequence that is
signed and verified. The result does not depend on key insertion order at
any nesting depth.

Two schemes exist:
- ``sorted-pairs``: ``key=value`` pairs joined by ``&``, keys sorted by
  UTF-8 bytes, nested mappings rendered recursively in place. This is the
  gateway's current wire format.
- ``json``: compact JSON with sorted keys, kept for counterparties that
  still expect the legacy format.

The sorted-pairs form is not injective. Values are not escaped, so a
nested mapping and a string spelling out its pairs render the same
(``{"a": {"x": 1}}`` and ``{"a": "x=1"}`` both give ``a=x=1``), and null
renders like the empty string. The gateway computes the same bytes, so
these collisions are part of the wire format.
"""

import json
import math
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Tuple

from ..errors import CanonicalizationError


# Transport-level signature fields, never part of the signed bytes
RESERVED_FIELDS = ("x-sign",)

SCHEME_SORTED_PAIRS = "sorted-pairs"
SCHEME_JSON = "json"
SCHEMES = (SCHEME_SORTED_PAIRS, SCHEME_JSON)

# Integral floats above this render in exponent form
_MAX_INTEGRAL_FLOAT = 1e15


class ValueKind(Enum):
    """Closed set of payload value kinds, one rendering rule each."""
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    STRING = "string"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


def classify(value: Any) -> ValueKind:
    """
    Classify a payload value into its ValueKind.

    bool is checked before int since it is an int subclass.

    Raises:
        CanonicalizationError: If the value has no canonical form
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationError(f"Non-finite float has no canonical form: {value!r}")
        return ValueKind.FLOAT
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise CanonicalizationError(f"Non-finite decimal has no canonical form: {value!r}")
        return ValueKind.DECIMAL
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    raise CanonicalizationError(f"Unsupported payload value type: {type(value).__name__}")


def format_float(value: float) -> str:
    """
    Render a float the way the gateway does.

    Examples:
        >>> format_float(250.0)
        '250'
        >>> format_float(100.5)
        '100.5'
        >>> format_float(-0.0)
        '-0'
    """
    if value.is_integer() and abs(value) < _MAX_INTEGRAL_FLOAT:
        if value == 0 and math.copysign(1.0, value) < 0:
            return "-0"
        return str(int(value))
    return repr(value)


def _key_text(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, int) and not isinstance(key, bool):
        return str(key)
    raise CanonicalizationError(f"Payload keys must be str or int, got {type(key).__name__}")


def sorted_items(payload: Mapping) -> List[Tuple[str, Any]]:
    """
    Return (key, value) pairs with reserved fields removed, sorted by UTF-8 key bytes.

    Raises:
        CanonicalizationError: If two keys collide once rendered as text
    """
    items: Dict[str, Any] = {}
    for key, value in payload.items():
        text = _key_text(key)
        if text in RESERVED_FIELDS:
            continue
        if text in items:
            raise CanonicalizationError(f"Duplicate payload key after coercion: {text!r}")
        items[text] = value
    return sorted(items.items(), key=lambda kv: kv[0].encode("utf-8"))


def render_value(value: Any) -> str:
    """Render a single value for the sorted-pairs scheme."""
    kind = classify(value)

    if kind is ValueKind.NULL:
        return ""
    if kind is ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind is ValueKind.INTEGER:
        return str(value)
    if kind is ValueKind.FLOAT:
        return format_float(value)
    if kind is ValueKind.DECIMAL:
        return str(value)
    if kind is ValueKind.STRING:
        return value
    if kind is ValueKind.MAPPING:
        return pairs_string(value)
    # Sequences keep their order; positions act as keys
    return "&".join(f"{i}={render_value(v)}" for i, v in enumerate(value))


def pairs_string(payload: Mapping) -> str:
    """
    Render a mapping as sorted ``key=value`` pairs joined by ``&``.

    Example:
        >>> pairs_string({"currency": "UAH", "amount": 100, "x-sign": "s"})
        'amount=100&currency=UAH'
    """
    return "&".join(f"{key}={render_value(value)}" for key, value in sorted_items(payload))


def dumps_pairs(payload: Mapping) -> bytes:
    """Serialize a payload to sorted-pairs UTF-8 bytes."""
    return pairs_string(payload).encode("utf-8")


def _json_text(value: Any) -> str:
    kind = classify(value)

    if kind is ValueKind.MAPPING:
        members = (
            f"{json.dumps(key, ensure_ascii=False)}:{_json_text(v)}"
            for key, v in sorted_items(value)
        )
        return "{" + ",".join(members) + "}"
    if kind is ValueKind.SEQUENCE:
        return "[" + ",".join(_json_text(v) for v in value) + "]"
    if kind is ValueKind.DECIMAL:
        # Written as a bare number with its own digits, trailing zeros included
        return str(value)
    return json.dumps(value, ensure_ascii=False, allow_nan=False)


def dumps_canonical(obj: Mapping) -> bytes:
    """
    Serialize a payload to canonical JSON bytes.

    Uses sorted keys and no whitespace for stability across implementations.
    Decimals are emitted as exact JSON numbers (``Decimal("100.50")`` ->
    ``100.50``), never rounded through float.

    Args:
        obj: Payload mapping to serialize

    Returns:
        UTF-8 encoded JSON bytes with sorted keys and no spaces
    """
    return _json_text(obj).encode("utf-8")


def canonicalize(payload: Mapping, scheme: str = SCHEME_SORTED_PAIRS) -> bytes:
    """
    Produce the canonical bytes of a payload under the given scheme.

    Args:
        payload: Request or response mapping, possibly nested
        scheme: SCHEME_SORTED_PAIRS or SCHEME_JSON

    Returns:
        Deterministic bytes ready for signing

    Raises:
        CanonicalizationError: If the payload or scheme is not supported
    """
    if not isinstance(payload, Mapping):
        raise CanonicalizationError(f"Payload must be a mapping, got {type(payload).__name__}")
    if scheme == SCHEME_SORTED_PAIRS:
        return dumps_pairs(payload)
    if scheme == SCHEME_JSON:
        return dumps_canonical(payload)
    raise CanonicalizationError(f"Unknown canonicalization scheme: {scheme}")
