"""
JSON encoders for wrpc.

Encoders are total: every well-formed value has exactly one JSON form, and
the same value always produces the same JSON (including key order).
"""

from __future__ import annotations

import json
from typing import Any, Sequence

from .types import TAG_ENVELOPE, TAG_UNION, Encoder, Err, Json, Ok


def encode_scalar(value: Any) -> Json:
    return value


def encode_optional(encode: Encoder) -> Encoder:
    """Absent optionals encode as an explicit null."""

    def encoder(value: Any) -> Json:
        return None if value is None else encode(value)

    return encoder


def encode_list(encode: Encoder) -> Encoder:
    def encoder(values: Sequence[Any]) -> Json:
        return [encode(value) for value in values]

    return encoder


def encode_set(encode: Encoder) -> Encoder:
    """Sets encode as a JSON array ordered by each element's canonical JSON text."""

    def encoder(values: Any) -> Json:
        encoded = [encode(value) for value in values]
        return sorted(encoded, key=_canonical)

    return encoder


def encode_map(encode: Encoder) -> Encoder:
    def encoder(values: dict[str, Any]) -> Json:
        return {key: encode(value) for key, value in values.items()}

    return encoder


def encode_fields(value: Any, fields: Sequence[tuple[str, Encoder]]) -> dict[str, Json]:
    """Encode the declared fields of ``value`` in declaration order."""
    return {name: encode(getattr(value, name)) for name, encode in fields}


def encode_variant(
    tag: str, value: Any, fields: Sequence[tuple[str, Encoder]]
) -> dict[str, Json]:
    """Encode a union variant: the tag first, then its fields."""
    return {TAG_UNION: tag, **encode_fields(value, fields)}


def encode_result(result: Ok[Any] | Err[Any], encode_ok: Encoder, encode_err: Encoder) -> Json:
    """
    Encode a Result envelope.

    Returns:
        {"type_": "Ok", "value": ...} or {"type_": "Err", "error": ...}
    """
    match result:
        case Ok(value=value):
            return {TAG_ENVELOPE: "Ok", "value": encode_ok(value)}
        case Err(error=error):
            return {TAG_ENVELOPE: "Err", "error": encode_err(error)}
    raise TypeError(f"Expected Ok or Err, got {type(result).__name__}")


def _canonical(value: Json) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))
