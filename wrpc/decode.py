"""
JSON decoders for wrpc.

Every decoder takes the (possibly absent) JSON value, a required flag and an
ErrorBundle. Failures are appended to the bundle and the decoder returns
None; nothing here raises on bad input.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Mapping, TypeVar

from .errors import BadDiscriminator, ErrorBundle, Expected, Required
from .types import (
    ARRAY,
    BOOLEAN,
    FLOAT32,
    FLOAT64,
    INT32,
    INT64,
    OBJECT,
    ONEOF,
    STRING,
    TAG_ENVELOPE,
    TAG_UNION,
    Err,
    Json,
    Ok,
)

T = TypeVar("T")

Decoder = Callable[[Json, bool, ErrorBundle], Any]
FieldsDecoder = Callable[[dict[str, Json], ErrorBundle], Any]
Extract = Callable[[Json], Any]

_INT32_RANGE = (-(2**31), 2**31 - 1)
_INT64_RANGE = (-(2**63), 2**63 - 1)
_FLOAT32_MAX = 3.4028234663852886e38


def _absent(value: Json, required: bool, errors: ErrorBundle) -> bool:
    """True when value is absent or null; reports Required if it had to be there."""
    if value is None:
        if required:
            errors.error(Required())
        return True
    return False


def decode_primitive(
    value: Json, required: bool, kind: str, errors: ErrorBundle, extract: Extract
) -> Any:
    """
    Decode a scalar.

    ``extract`` returns the converted value, or None when the JSON value is a
    primitive that cannot represent ``kind``.
    """
    if _absent(value, required, errors):
        return None

    if isinstance(value, (dict, list)):
        errors.error(Expected(kind, value))
        return None

    result = extract(value)
    if result is None:
        errors.error(Expected(kind, value))
        return None

    return result


def _is_number(value: Json) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _extract_int(bounds: tuple[int, int]) -> Extract:
    low, high = bounds

    def extract(value: Json) -> int | None:
        if isinstance(value, int) and not isinstance(value, bool):
            if low <= value <= high:
                return value
        return None

    return extract


def _extract_float(limit: float) -> Extract:
    def extract(value: Json) -> float | None:
        if not _is_number(value):
            return None
        try:
            result = float(value)
        except OverflowError:
            return None
        if not math.isfinite(result) or abs(result) > limit:
            return None
        return result

    return extract


def _extract_string(value: Json) -> str | None:
    return value if isinstance(value, str) else None


def _extract_boolean(value: Json) -> bool | None:
    return value if isinstance(value, bool) else None


_extract_int32 = _extract_int(_INT32_RANGE)
_extract_int64 = _extract_int(_INT64_RANGE)
_extract_float32 = _extract_float(_FLOAT32_MAX)
_extract_float64 = _extract_float(math.inf)


def decode_string(value: Json, required: bool, errors: ErrorBundle) -> str | None:
    return decode_primitive(value, required, STRING, errors, _extract_string)


def decode_int32(value: Json, required: bool, errors: ErrorBundle) -> int | None:
    return decode_primitive(value, required, INT32, errors, _extract_int32)


def decode_int64(value: Json, required: bool, errors: ErrorBundle) -> int | None:
    return decode_primitive(value, required, INT64, errors, _extract_int64)


def decode_float32(value: Json, required: bool, errors: ErrorBundle) -> float | None:
    return decode_primitive(value, required, FLOAT32, errors, _extract_float32)


def decode_float64(value: Json, required: bool, errors: ErrorBundle) -> float | None:
    return decode_primitive(value, required, FLOAT64, errors, _extract_float64)


def decode_boolean(value: Json, required: bool, errors: ErrorBundle) -> bool | None:
    return decode_primitive(value, required, BOOLEAN, errors, _extract_boolean)


def _decode_elements(
    value: list[Json], decode_element: Decoder, errors: ErrorBundle
) -> list[Any] | None:
    values = []
    failed = False
    for i, item in enumerate(value):
        child = errors.child()
        values.append(decode_element(item, True, child))
        failed = errors.at(i, child) or failed
    return None if failed else values


def decode_array(
    value: Json, required: bool, decode_element: Decoder, errors: ErrorBundle
) -> list[Any] | None:
    """
    Decode a JSON array element by element.

    Each element gets its own bundle; element errors are appended to
    ``errors`` as At(index, ...) in index order.
    """
    if _absent(value, required, errors):
        return None

    if not isinstance(value, list):
        errors.error(Expected(ARRAY, value))
        return None

    return _decode_elements(value, decode_element, errors)


def decode_set(
    value: Json, required: bool, decode_element: Decoder, errors: ErrorBundle
) -> frozenset[Any] | None:
    """Decode a JSON array into a frozenset. Duplicates collapse silently."""
    values = decode_array(value, required, decode_element, errors)
    return None if values is None else frozenset(values)


def decode_map(
    value: Json, required: bool, decode_value: Decoder, errors: ErrorBundle
) -> dict[str, Any] | None:
    """Decode a JSON object with arbitrary string keys into a dict."""
    if _absent(value, required, errors):
        return None

    if not isinstance(value, dict):
        errors.error(Expected(OBJECT, value))
        return None

    result = {}
    failed = False
    for key, item in value.items():
        child = errors.child()
        result[key] = decode_value(item, True, child)
        failed = errors.field(key, child) or failed
    return None if failed else result


def decode_object(
    value: Json, required: bool, decode_fields: FieldsDecoder, errors: ErrorBundle
) -> Any:
    """
    Decode a JSON object with a field-by-field routine.

    ``decode_fields`` receives the object and the same bundle; it is expected
    to fold each field's errors as Field(name, ...) and to return None when
    it reported any.
    """
    if _absent(value, required, errors):
        return None

    if not isinstance(value, dict):
        errors.error(Expected(OBJECT, value))
        return None

    return decode_fields(value, errors)


def decode_field(
    obj: Mapping[str, Json],
    name: str,
    decoder: Decoder,
    required: bool,
    errors: ErrorBundle,
) -> Any:
    """Decode ``obj[name]``, folding any error as Field(name, ...)."""
    child = errors.child()
    result = decoder(obj.get(name), required, child)
    errors.field(name, child)
    return result


def decode_union(
    value: Json,
    required: bool,
    variants: Mapping[str, FieldsDecoder],
    errors: ErrorBundle,
    tag: str = TAG_UNION,
) -> Any:
    """
    Decode a tagged union.

    The tag field selects the variant's fields decoder, which runs on the
    same object. A missing, non-string or unknown tag is reported as
    BadDiscriminator(Expected("STRING", tag_value)).
    """
    if _absent(value, required, errors):
        return None

    if not isinstance(value, dict):
        errors.error(Expected(OBJECT, value))
        return None

    discriminator = value.get(tag)
    if not isinstance(discriminator, str) or discriminator not in variants:
        errors.error(BadDiscriminator(Expected(STRING, discriminator)))
        return None

    return variants[discriminator](value, errors)


def decode_enum(
    value: Json, required: bool, members: Mapping[str, T], errors: ErrorBundle
) -> T | None:
    """Decode a simple enum encoded as a bare JSON string."""
    if _absent(value, required, errors):
        return None

    if not isinstance(value, str):
        errors.error(Expected(STRING, value))
        return None

    if value not in members:
        errors.error(Expected(ONEOF, value))
        return None

    return members[value]


def decode_result(
    value: Json,
    required: bool,
    decode_ok: Decoder,
    decode_err: Decoder,
    errors: ErrorBundle,
) -> Ok[Any] | Err[Any] | None:
    """Decode a Result envelope: {"type_": "Ok", "value": ...} or {"type_": "Err", "error": ...}."""

    def ok(obj: dict[str, Json], errors: ErrorBundle) -> Ok[Any] | None:
        mark = len(errors)
        payload = decode_field(obj, "value", decode_ok, True, errors)
        return None if len(errors) > mark else Ok(payload)

    def err(obj: dict[str, Json], errors: ErrorBundle) -> Err[Any] | None:
        mark = len(errors)
        payload = decode_field(obj, "error", decode_err, True, errors)
        return None if len(errors) > mark else Err(payload)

    return decode_union(value, required, {"Ok": ok, "Err": err}, errors, tag=TAG_ENVELOPE)
