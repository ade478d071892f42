"""
Type definitions for wrpc.

Provides a minimal Result type (Ok/Err), the JSON value alias and the fixed
vocabulary shared by decoders, encoders and the wire error format.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Error result containing an error value."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True


Result = Union[Ok[T], Err[E]]

# Type aliases
Json = Any
Encoder = Callable[[Any], Json]

# Sentinel field names. Envelopes (errors, Result) use TAG_ENVELOPE, records
# and unions use TAG_UNION.
TAG_ENVELOPE = "type_"
TAG_UNION = "@type"

# Kind tags reported by Expected(...)
STRING = "STRING"
INT32 = "INT32"
INT64 = "INT64"
FLOAT32 = "FLOAT32"
FLOAT64 = "FLOAT64"
BOOLEAN = "BOOLEAN"
OBJECT = "OBJECT"
ARRAY = "ARRAY"
ONEOF = "ONEOF"
UNKNOWN = "UNKNOWN"

KINDS = frozenset(
    {STRING, INT32, INT64, FLOAT32, FLOAT64, BOOLEAN, OBJECT, ARRAY, ONEOF, UNKNOWN}
)
