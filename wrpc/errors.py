"""
Structural error vocabulary for wrpc.

Leaves are Required, Expected and Invalid; At, Field and BadDiscriminator
only record where in the input a leaf was found. A wrapper holds a single
node, or a tuple of nodes when the nested decode reported several.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, Union

from .types import TAG_ENVELOPE, TAG_UNION, Json


class SchemaError(ValueError):
    """Raised when a schema cannot be compiled."""


class UnknownTypeError(SchemaError, KeyError):
    """Raised when a registry lookup names a type that was never declared."""

    def __str__(self) -> str:
        return ValueError.__str__(self)


@dataclass(frozen=True, slots=True)
class Required:
    """A required value was absent or null."""

    def to_json(self) -> dict[str, Json]:
        return {TAG_ENVELOPE: "Required"}


@dataclass(frozen=True, slots=True)
class Expected:
    """A value was present but of the wrong kind."""

    kind: str
    found: Json = None

    def to_json(self) -> dict[str, Json]:
        return {TAG_ENVELOPE: "Expected", "type": self.kind, "found": _finite(self.found)}


@dataclass(frozen=True, slots=True)
class Invalid:
    """A decoded value violated a constraint."""

    constraint: str

    def to_json(self) -> dict[str, Json]:
        return {TAG_ENVELOPE: "Invalid", "constraint": self.constraint}


@dataclass(frozen=True, slots=True)
class At:
    """Error located at an array position."""

    index: int
    error: Nested

    def to_json(self) -> dict[str, Json]:
        return {TAG_ENVELOPE: "At", "index": self.index, "error": _nested_json(self.error)}


@dataclass(frozen=True, slots=True)
class Field:
    """Error located at an object field."""

    name: str
    error: Nested

    def to_json(self) -> dict[str, Json]:
        return {TAG_UNION: "Field", "name": self.name, "error": _nested_json(self.error)}


@dataclass(frozen=True, slots=True)
class BadDiscriminator:
    """The tag used to select a variant was missing, malformed or unknown."""

    error: Nested

    def to_json(self) -> dict[str, Json]:
        return {TAG_ENVELOPE: "BadDiscriminator", "error": _nested_json(self.error)}


ErrorNode = Union[Required, Expected, Invalid, At, Field, BadDiscriminator]
Nested = Union[ErrorNode, tuple[ErrorNode, ...]]


def _finite(value: Json) -> Json:
    """Non-finite floats (1e400, NaN) render as null."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, list):
        return [_finite(item) for item in value]
    if isinstance(value, dict):
        return {key: _finite(item) for key, item in value.items()}
    return value


def _nested_json(error: Nested) -> Json:
    if isinstance(error, tuple):
        return [node.to_json() for node in error]
    return error.to_json()


@dataclass(slots=True)
class ErrorBundle:
    """
    Ordered, append-only sink for the errors of one decode or validation call.

    Nested decodes write into a ``child()`` bundle which the caller folds back
    with ``at()`` or ``field()``, so every level owns exactly one sink.

    Usage:
        errors = ErrorBundle()
        x = decode_int32(obj.get("x"), True, errors)
        if errors.is_empty():
            ...
    """

    _errors: list[ErrorNode] = field(default_factory=list)

    def error(self, node: ErrorNode) -> None:
        """Append a single error."""
        self._errors.append(node)

    def extend(self, other: ErrorBundle) -> None:
        """Append every error of ``other`` without wrapping."""
        self._errors.extend(other._errors)

    def child(self) -> ErrorBundle:
        """Return a fresh bundle for a nested decode."""
        return ErrorBundle()

    def folded(self) -> Nested:
        """The bundle as the payload of a wrapper node."""
        if len(self._errors) == 1:
            return self._errors[0]
        return tuple(self._errors)

    def at(self, index: int, child: ErrorBundle) -> bool:
        """Fold a non-empty child as ``At(index, ...)``. Returns True if folded."""
        if child.is_empty():
            return False
        self._errors.append(At(index, child.folded()))
        return True

    def field(self, name: str, child: ErrorBundle) -> bool:
        """Fold a non-empty child as ``Field(name, ...)``. Returns True if folded."""
        if child.is_empty():
            return False
        self._errors.append(Field(name, child.folded()))
        return True

    def is_empty(self) -> bool:
        return not self._errors

    @property
    def errors(self) -> tuple[ErrorNode, ...]:
        return tuple(self._errors)

    def to_json(self) -> list[Json]:
        """Wire representation: a JSON array of error nodes."""
        return [node.to_json() for node in self._errors]

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[ErrorNode]:
        return iter(tuple(self._errors))

    def __bool__(self) -> bool:
        return bool(self._errors)
