"""
Schema compilation for wrpc.

A Registry turns a schema Module into value classes and codecs. Records
become frozen dataclasses, unions become a base class with one dataclass per
variant, simple enums become Python enums. Each value class is given the
same three operations as the codec that owns it:

    Point.decode(json, errors)  -> Point | None
    point.encode()              -> JSON
    point.validate()            -> ErrorBundle

Usage:
    registry = Registry(module)
    errors = ErrorBundle()
    point = registry.decode("Point", {"x": 1, "y": 2}, errors)
"""

from __future__ import annotations

import enum
import keyword
from dataclasses import dataclass, make_dataclass
from typing import Any, Callable, Mapping, Sequence

from .decode import (
    Decoder,
    decode_array,
    decode_boolean,
    decode_enum,
    decode_field,
    decode_float32,
    decode_float64,
    decode_int32,
    decode_int64,
    decode_map,
    decode_object,
    decode_result,
    decode_set,
    decode_string,
    decode_union,
)
from .encode import (
    encode_fields,
    encode_list,
    encode_map,
    encode_optional,
    encode_result,
    encode_scalar,
    encode_set,
    encode_variant,
)
from .errors import ErrorBundle, SchemaError, UnknownTypeError
from .logging import get_logger
from .schema import Enum, Method, Module, Property, Record, Service, Type, Variant
from .types import Encoder, Json
from .validation import ValidationPlan, build_plan

log = get_logger(__name__)

_SCALAR_DECODERS: dict[str, Decoder] = {
    "string": decode_string,
    "boolean": decode_boolean,
    "int32": decode_int32,
    "int64": decode_int64,
    "float32": decode_float32,
    "float64": decode_float64,
}

_RESERVED = frozenset({"encode", "decode", "validate"})
# ServiceClient attributes
_RESERVED_METHODS = frozenset({"call", "close", "service", "registry", "base_url"})


@dataclass(frozen=True, slots=True)
class FieldCodec:
    name: str
    required: bool
    decode: Decoder
    encode: Encoder


class Codec:
    """Decode, encode and validate one named type."""

    name: str
    value_type: type

    def decode(self, json: Json, errors: ErrorBundle) -> Any:
        """Decode a required value; None with ``errors`` extended on failure."""
        return self.decode_value(json, True, errors)

    def decode_value(self, json: Json, required: bool, errors: ErrorBundle) -> Any:
        raise NotImplementedError

    def encode(self, value: Any) -> Json:
        raise NotImplementedError

    def validate(self, value: Any) -> ErrorBundle:
        return ErrorBundle()


class _Fields:
    """Decoding and construction of an ordered set of fields."""

    def __init__(self, owner: str, fields: Sequence[FieldCodec], build: Callable[..., Any]):
        self.owner = owner
        self.fields = tuple(fields)
        self.encoders = tuple((f.name, f.encode) for f in self.fields)
        self.build = build

    def decode(self, obj: dict[str, Json], errors: ErrorBundle) -> Any:
        mark = len(errors)
        values = {
            f.name: decode_field(obj, f.name, f.decode, f.required, errors)
            for f in self.fields
        }
        if len(errors) > mark:
            return None

        for f in self.fields:
            assert not (f.required and values[f.name] is None), (
                f"{self.owner}.{f.name} is required but decoded to None without an error"
            )
        return self.build(**values)


class RecordCodec(Codec):
    def __init__(self, name: str, value_type: type, fields: Sequence[FieldCodec], plan: ValidationPlan):
        self.name = name
        self.value_type = value_type
        self.plan = plan
        self.singleton = None if fields else value_type()
        build = (lambda: self.singleton) if self.singleton is not None else value_type
        self._fields = _Fields(name, fields, build)

    @property
    def fields(self) -> tuple[FieldCodec, ...]:
        return self._fields.fields

    def decode_value(self, json: Json, required: bool, errors: ErrorBundle) -> Any:
        return decode_object(json, required, self._fields.decode, errors)

    def encode(self, value: Any) -> Json:
        return encode_fields(value, self._fields.encoders)

    def validate(self, value: Any) -> ErrorBundle:
        return self.plan.validate(value)


@dataclass(frozen=True)
class _VariantCodec:
    name: str
    value_type: type
    fields: _Fields
    plan: ValidationPlan


class UnionCodec(Codec):
    """A sum type discriminated by the "@type" field."""

    def __init__(self, name: str, value_type: type, variants: Sequence[_VariantCodec]):
        self.name = name
        self.value_type = value_type
        self.variants = {variant.name: variant for variant in variants}
        self._by_class = {variant.value_type: variant for variant in variants}
        self._decoders = {name: variant.fields.decode for name, variant in self.variants.items()}

    def decode_value(self, json: Json, required: bool, errors: ErrorBundle) -> Any:
        return decode_union(json, required, self._decoders, errors)

    def _variant_of(self, value: Any) -> _VariantCodec:
        try:
            return self._by_class[type(value)]
        except KeyError:
            raise TypeError(f"{type(value).__name__} is not a variant of {self.name}") from None

    def encode(self, value: Any) -> Json:
        variant = self._variant_of(value)
        return encode_variant(variant.name, value, variant.fields.encoders)

    def validate(self, value: Any) -> ErrorBundle:
        return self._variant_of(value).plan.validate(value)


class EnumCodec(Codec):
    """An enum whose variants carry no data, encoded as a bare string."""

    def __init__(self, name: str, value_type: type[enum.Enum]):
        self.name = name
        self.value_type = value_type
        self.members = {member.value: member for member in value_type}

    def decode_value(self, json: Json, required: bool, errors: ErrorBundle) -> Any:
        return decode_enum(json, required, self.members, errors)

    def encode(self, value: Any) -> Json:
        return value.value


class Registry:
    """
    Compiled form of a schema Module.

    Raises:
        SchemaError: On duplicate names, unknown type references, names that
            cannot be Python attributes, or invalid validation dependencies.
    """

    def __init__(self, module: Module):
        self.module = module
        self._codecs: dict[str, Codec] = {}
        self._requests: dict[tuple[str, str], RecordCodec] = {}

        self._declared = self._collect_names(module)

        for record in module.records:
            self._codecs[record.name] = self._compile_record(record)
        for enum_ in module.enums:
            self._codecs[enum_.name] = self._compile_enum(enum_)
        for service in module.services:
            self._compile_service(service)

        log.debug(
            "schema_compiled",
            records=len(module.records),
            enums=len(module.enums),
            services=len(module.services),
        )

    # Lookup

    def __getitem__(self, name: str) -> Codec:
        try:
            return self._codecs[name]
        except KeyError:
            raise UnknownTypeError(f"Unknown type: {name}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._codecs

    def names(self) -> tuple[str, ...]:
        return tuple(self._codecs)

    def value_type(self, name: str) -> type:
        return self[name].value_type

    def request(self, service: str, method: str) -> RecordCodec:
        """Codec of the synthetic record holding a method's parameters."""
        try:
            return self._requests[(service, method)]
        except KeyError:
            raise UnknownTypeError(f"Unknown method: {service}.{method}") from None

    # Operations

    def decode(self, name: str, json: Json, errors: ErrorBundle) -> Any:
        return self[name].decode(json, errors)

    def encode(self, name: str, value: Any) -> Json:
        return self[name].encode(value)

    def validate(self, name: str, value: Any) -> ErrorBundle:
        return self[name].validate(value)

    def decoder_for(self, type_: Type) -> Decoder:
        """Build the decoder of a type; optionality turns off the required flag."""
        kind = type_.kind
        if kind in _SCALAR_DECODERS:
            return _SCALAR_DECODERS[kind]
        if kind == "option":
            inner = self.decoder_for(type_.of)
            return lambda value, required, errors: inner(value, False, errors)
        if kind == "list":
            element = self.decoder_for(type_.of)
            return lambda value, required, errors: decode_array(value, required, element, errors)
        if kind == "set":
            element = self.decoder_for(type_.of)
            return lambda value, required, errors: decode_set(value, required, element, errors)
        if kind == "map":
            item = self.decoder_for(type_.of)
            return lambda value, required, errors: decode_map(value, required, item, errors)
        if kind == "result":
            ok = self.decoder_for(type_.of)
            err = self.decoder_for(type_.error)
            return lambda value, required, errors: decode_result(value, required, ok, err, errors)

        name = self._check_ref(type_)
        return lambda value, required, errors: self[name].decode_value(value, required, errors)

    def encoder_for(self, type_: Type) -> Encoder:
        """Build the encoder of a type."""
        kind = type_.kind
        if kind in _SCALAR_DECODERS:
            return encode_scalar
        if kind == "option":
            return encode_optional(self.encoder_for(type_.of))
        if kind == "list":
            return encode_list(self.encoder_for(type_.of))
        if kind == "set":
            return encode_set(self.encoder_for(type_.of))
        if kind == "map":
            return encode_map(self.encoder_for(type_.of))
        if kind == "result":
            ok = self.encoder_for(type_.of)
            err = self.encoder_for(type_.error)
            return lambda value: encode_result(value, ok, err)

        name = self._check_ref(type_)
        return lambda value: self[name].encode(value)

    # Compilation

    @staticmethod
    def _collect_names(module: Module) -> set[str]:
        names: set[str] = set()
        for decl in (*module.records, *module.enums):
            if decl.name in names:
                raise SchemaError(f"Duplicate type name: {decl.name}")
            names.add(decl.name)
        services = [service.name for service in module.services]
        if len(services) != len(set(services)):
            raise SchemaError("Duplicate service name")
        return names

    def _check_ref(self, type_: Type) -> str:
        if type_.name not in self._declared:
            raise SchemaError(f"Unknown type reference: {type_.name}")
        return type_.name

    def _field_codecs(self, owner: str, properties: Sequence[Property]) -> list[FieldCodec]:
        seen: set[str] = set()
        fields = []
        for prop in properties:
            _check_attribute(owner, prop.name)
            if prop.name in seen:
                raise SchemaError(f"Duplicate property {owner}.{prop.name}")
            seen.add(prop.name)
            fields.append(
                FieldCodec(
                    name=prop.name,
                    required=prop.required,
                    decode=self.decoder_for(prop.type),
                    encode=self.encoder_for(prop.type),
                )
            )
        return fields

    def _compile_record(self, record: Record) -> RecordCodec:
        _check_attribute(record.name, record.name)
        fields = self._field_codecs(record.name, record.properties)
        value_type = _value_class(record.name, [f.name for f in fields])
        codec = RecordCodec(record.name, value_type, fields, build_plan(record))
        _attach(value_type, codec)
        return codec

    def _compile_enum(self, enum_: Enum) -> Codec:
        _check_attribute(enum_.name, enum_.name)
        names = [variant.name for variant in enum_.variants]
        if len(names) != len(set(names)):
            raise SchemaError(f"Duplicate variant in {enum_.name}")

        if enum_.is_simple:
            value_type = enum.Enum(enum_.name, [(name, name) for name in names])
            codec: Codec = EnumCodec(enum_.name, value_type)
            _attach(value_type, codec)
            return codec

        base = type(enum_.name, (), {"__slots__": ()})
        variants = [self._compile_variant(base, variant) for variant in enum_.variants]
        codec = UnionCodec(enum_.name, base, variants)
        _attach(base, codec)
        return codec

    def _compile_variant(self, base: type, variant: Variant) -> _VariantCodec:
        _check_attribute(variant.name, variant.name)
        qualified = f"{base.__name__}.{variant.name}"
        fields = self._field_codecs(qualified, variant.properties)
        value_type = _value_class(variant.name, [f.name for f in fields], bases=(base,))
        value_type.__qualname__ = qualified
        setattr(base, variant.name, value_type)

        plan = build_plan(Record(name=qualified, properties=variant.properties))
        if fields:
            build: Callable[..., Any] = value_type
        else:
            singleton = value_type()
            build = lambda: singleton  # noqa: E731
        return _VariantCodec(variant.name, value_type, _Fields(qualified, fields, build), plan)

    def _compile_service(self, service: Service) -> None:
        paths: set[str] = set()
        for method in service.methods:
            if not method.name.isidentifier() or keyword.iskeyword(method.name):
                raise SchemaError(f"{service.name}: '{method.name}' is not a valid Python identifier")
            if method.name in _RESERVED_METHODS or method.name.startswith("_"):
                raise SchemaError(f"{service.name}: method name '{method.name}' is reserved")
            if (service.name, method.name) in self._requests:
                raise SchemaError(f"Duplicate method {service.name}.{method.name}")
            path = service.method_path(method)
            if path in paths:
                raise SchemaError(f"Duplicate route {path} in {service.name}")
            paths.add(path)
            self._requests[(service.name, method.name)] = self._compile_request(method)
            if method.return_type is not None:
                self.decoder_for(method.return_type)

    def _compile_request(self, method: Method) -> RecordCodec:
        request = method.as_request()
        fields = self._field_codecs(request.name, request.properties)
        value_type = _value_class(request.name, [f.name for f in fields])
        return RecordCodec(request.name, value_type, fields, build_plan(request))


def _check_attribute(owner: str, name: str) -> None:
    if not name.isidentifier() or keyword.iskeyword(name):
        raise SchemaError(f"{owner}: '{name}' is not a valid Python identifier")
    if name in _RESERVED:
        raise SchemaError(f"{owner}: '{name}' is reserved")


def _value_class(name: str, fields: list[str], bases: tuple[type, ...] = ()) -> type:
    return make_dataclass(name, [(f, Any) for f in fields], bases=bases, frozen=True, slots=True)


def _attach(value_type: type, codec: Codec) -> None:
    """Give a generated class the operations of its codec."""
    value_type.decode = classmethod(lambda cls, json, errors: codec.decode(json, errors))
    value_type.encode = lambda self: codec.encode(self)
    value_type.validate = lambda self: codec.validate(self)


def compile_module(module: Module | Mapping[str, Any]) -> Registry:
    """Compile a Module (or its JSON-like form) into a Registry."""
    if not isinstance(module, Module):
        module = Module.model_validate(module)
    return Registry(module)
