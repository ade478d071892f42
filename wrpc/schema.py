"""
Schema IR for wrpc.

The schema is consumed already parsed: records, enums and services as
immutable Pydantic models, loadable from JSON. Types accept a shorthand
string ("Int32", "String", "Point") wherever a type is expected.

Usage:
    module = Module.model_validate({
        "records": [
            {"name": "Point", "properties": [
                {"name": "x", "type": "Int32"},
                {"name": "y", "type": "Int32"},
            ]},
        ],
    })
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

SCALARS = ("string", "boolean", "int32", "int64", "float32", "float64")
TypeKind = Literal[
    "string",
    "boolean",
    "int32",
    "int64",
    "float32",
    "float64",
    "list",
    "set",
    "map",
    "option",
    "result",
    "ref",
]
ConstraintOp = Literal[
    "and",
    "or",
    "xor",
    "not",
    "eq",
    "lt",
    "le",
    "gt",
    "ge",
    "len",
    "blank",
    "access",
    "number",
    "string",
    "boolean",
]

_UNARY_OPS = {"not", "len", "blank"}
_LITERAL_OPS = {"number", "string", "boolean"}


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Type(_Node):
    """
    A type reference.

    ``of`` is the element type of list/set, the value type of map, the inner
    type of option and the success type of result; ``error`` is the error
    type of result; ``name`` names the record or enum of a ref.
    """

    kind: TypeKind
    of: Optional[Type] = None
    error: Optional[Type] = None
    name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            if data.lower() in SCALARS:
                return {"kind": data.lower()}
            return {"kind": "ref", "name": data}
        return data

    @model_validator(mode="after")
    def _check_parts(self) -> Type:
        if self.kind in ("list", "set", "map", "option", "result") and self.of is None:
            raise ValueError(f"{self.kind} type requires 'of'")
        if self.kind == "result" and self.error is None:
            raise ValueError("result type requires 'error'")
        if self.kind == "ref" and not self.name:
            raise ValueError("ref type requires 'name'")
        return self

    @property
    def is_optional(self) -> bool:
        return self.kind == "option"

    @classmethod
    def scalar(cls, kind: str) -> Type:
        return cls(kind=kind)

    @classmethod
    def list_of(cls, of: Type | str) -> Type:
        return cls(kind="list", of=of)

    @classmethod
    def set_of(cls, of: Type | str) -> Type:
        return cls(kind="set", of=of)

    @classmethod
    def map_of(cls, of: Type | str) -> Type:
        return cls(kind="map", of=of)

    @classmethod
    def option(cls, of: Type | str) -> Type:
        return cls(kind="option", of=of)

    @classmethod
    def result(cls, error: Type | str, ok: Type | str) -> Type:
        return cls(kind="result", of=ok, error=error)

    @classmethod
    def ref(cls, name: str) -> Type:
        return cls(kind="ref", name=name)


class Constraint(_Node):
    """
    A constraint expression.

    Literals may be written bare inside ``args``: numbers and booleans stay
    literals, strings starting with "." access a property, other strings are
    string literals.
    """

    op: ConstraintOp
    args: list[Constraint] = []
    value: Union[bool, float, str, None] = None
    name: Optional[str] = None

    @field_validator("args", mode="before")
    @classmethod
    def _bare_args(cls, args: Any) -> Any:
        if not isinstance(args, (list, tuple)):
            return args
        return [_bare_constraint(arg) for arg in args]

    @model_validator(mode="after")
    def _check_arity(self) -> Constraint:
        if self.op in _UNARY_OPS and len(self.args) != 1:
            raise ValueError(f"'{self.op}' takes exactly one argument")
        if self.op == "access" and not self.name:
            raise ValueError("'access' requires 'name'")
        if self.op in _LITERAL_OPS and self.value is None:
            raise ValueError(f"'{self.op}' requires 'value'")
        return self


def _bare_constraint(arg: Any) -> Any:
    if isinstance(arg, bool):
        return {"op": "boolean", "value": arg}
    if isinstance(arg, (int, float)):
        return {"op": "number", "value": arg}
    if isinstance(arg, str):
        if arg.startswith("."):
            return {"op": "access", "name": arg[1:]}
        return {"op": "string", "value": arg}
    return arg


class Property(_Node):
    name: str
    type: Type
    constraints: list[Constraint] = []
    depends_on: list[str] = []
    comment: Optional[str] = None

    @property
    def required(self) -> bool:
        return not self.type.is_optional


class Record(_Node):
    """A product type; ``constraints`` are record-scoped."""

    name: str
    properties: list[Property] = []
    constraints: list[Constraint] = []
    comment: Optional[str] = None


class Variant(_Node):
    name: str
    properties: list[Property] = []
    comment: Optional[str] = None


class Enum(_Node):
    name: str
    variants: list[Variant]
    comment: Optional[str] = None

    @property
    def is_simple(self) -> bool:
        """True when no variant carries properties (encoded as a bare string)."""
        return all(not variant.properties for variant in self.variants)


class Parameter(_Node):
    name: str
    type: Type
    constraints: list[Constraint] = []
    depends_on: list[str] = []
    comment: Optional[str] = None

    def as_property(self) -> Property:
        return Property(
            name=self.name,
            type=self.type,
            constraints=self.constraints,
            depends_on=self.depends_on,
        )


class Method(_Node):
    name: str
    parameters: list[Parameter] = []
    return_type: Optional[Type] = None
    path: Optional[str] = None
    comment: Optional[str] = None

    @property
    def request_name(self) -> str:
        """Name of the synthetic record holding the parameters."""
        return f"{self.name[:1].upper()}{self.name[1:]}Request"

    def as_request(self) -> Record:
        return Record(
            name=self.request_name,
            properties=[param.as_property() for param in self.parameters],
        )


class Service(_Node):
    name: str
    methods: list[Method] = []
    comment: Optional[str] = None

    def method_path(self, method: Method) -> str:
        return method.path or f"/{self.name}/{method.name}"

    def get_method(self, name: str) -> Optional[Method]:
        return next((m for m in self.methods if m.name == name), None)

    def get_sorted_methods(self) -> list[Method]:
        return sorted(self.methods, key=lambda m: m.name)


class Module(_Node):
    records: list[Record] = []
    enums: list[Enum] = []
    services: list[Service] = []

    def get_record(self, name: str) -> Optional[Record]:
        return next((r for r in self.records if r.name == name), None)

    def get_enum(self, name: str) -> Optional[Enum]:
        return next((e for e in self.enums if e.name == name), None)

    def get_service(self, name: str) -> Optional[Service]:
        return next((s for s in self.services if s.name == name), None)

    def get_method(self, service_name: str, method_name: str) -> Optional[Method]:
        """
        Find a method of a service.

        Usage:
            module.get_method("RandomService", "random")
        """
        service = self.get_service(service_name)
        return service.get_method(method_name) if service else None

    def get_sorted_services(self) -> list[Service]:
        return sorted(self.services, key=lambda s: s.name)


def load_module(path: str | Path) -> Module:
    """Load a schema module from a JSON file."""
    return Module.model_validate_json(Path(path).read_text(encoding="utf-8"))
