"""
wrpc - schema-driven JSON codecs, validation and RPC stubs.

Usage:
    from wrpc import ErrorBundle, compile_module

    registry = compile_module({
        "records": [
            {"name": "Point", "properties": [
                {"name": "x", "type": "Int32"},
                {"name": "y", "type": "Int32"},
            ]},
        ],
    })

    errors = ErrorBundle()
    point = registry.decode("Point", {"x": 1}, errors)
    # point is None, errors == [Field("y", Required())]
"""

from .codec import Codec, Registry, compile_module
from .errors import (
    At,
    BadDiscriminator,
    ErrorBundle,
    ErrorNode,
    Expected,
    Field,
    Invalid,
    Required,
    SchemaError,
    UnknownTypeError,
)
from .schema import (
    Constraint,
    Enum,
    Method,
    Module,
    Parameter,
    Property,
    Record,
    Service,
    Type,
    Variant,
    load_module,
)
from .types import Err, Ok

__all__ = [
    # Result types
    "Ok",
    "Err",
    # Errors
    "ErrorBundle",
    "ErrorNode",
    "Required",
    "Expected",
    "Invalid",
    "At",
    "Field",
    "BadDiscriminator",
    "SchemaError",
    "UnknownTypeError",
    # Schema
    "Module",
    "Record",
    "Enum",
    "Variant",
    "Property",
    "Service",
    "Method",
    "Parameter",
    "Type",
    "Constraint",
    "load_module",
    # Codecs
    "Codec",
    "Registry",
    "compile_module",
]
