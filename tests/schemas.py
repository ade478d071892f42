"""
Shared schema modules for all test files.

Keeps the schemas used across the test suite in one place so every test
reasons about the same records, unions and services.
"""

from typing import Any

from wrpc import compile_module
from wrpc.constraints import access, and_, blank, eq, gt, length, not_, or_

# =============================================================================
# Geometry (Point / Shape / Color)
# =============================================================================

GEOMETRY: dict[str, Any] = {
    "records": [
        {
            "name": "Point",
            "properties": [
                {"name": "x", "type": "Int32"},
                {"name": "y", "type": "Int32"},
            ],
        },
        {
            "name": "Polygon",
            "properties": [
                {"name": "label", "type": {"kind": "option", "of": "String"}},
                {"name": "points", "type": {"kind": "list", "of": "Point"}},
                {"name": "tags", "type": {"kind": "set", "of": "String"}},
            ],
        },
        {"name": "Empty"},
    ],
    "enums": [
        {
            "name": "Shape",
            "variants": [
                {"name": "Circle", "properties": [{"name": "r", "type": "Float64"}]},
                {"name": "Square", "properties": [{"name": "side", "type": "Float64"}]},
                {"name": "Dot"},
            ],
        },
        {
            "name": "Color",
            "variants": [{"name": "RED"}, {"name": "GREEN"}, {"name": "BLUE"}],
        },
    ],
}

# =============================================================================
# Address (constraints with dependencies)
# =============================================================================

ADDRESS: dict[str, Any] = {
    "records": [
        {
            "name": "Address",
            "properties": [
                {
                    "name": "street",
                    "type": "String",
                    "constraints": [not_(blank(access("street")))],
                },
                {"name": "houseNo", "type": "Int32", "constraints": [gt(access("houseNo"), 0)]},
                {
                    "name": "zipcode",
                    "type": "String",
                    "constraints": [
                        or_(
                            and_(eq(access("country"), "DE"), eq(length(access("zipcode")), 5)),
                            and_(eq(access("country"), "CH"), eq(length(access("zipcode")), 4)),
                        )
                    ],
                },
                {
                    "name": "country",
                    "type": "String",
                    "constraints": [or_(eq(access("country"), "DE"), eq(access("country"), "CH"))],
                },
                {"name": "note", "type": {"kind": "option", "of": "String"},
                 "constraints": [gt(length(access("note")), 2)]},
            ],
            "constraints": [not_(eq(access("street"), "Nowhere"))],
        }
    ]
}

# =============================================================================
# Library (recursion, maps, results, service)
# =============================================================================

LIBRARY: dict[str, Any] = {
    "records": [
        {
            "name": "Category",
            "properties": [
                {"name": "name", "type": "String"},
                {"name": "children", "type": {"kind": "list", "of": "Category"}},
            ],
        },
        {
            "name": "Book",
            "properties": [
                {"name": "title", "type": "String"},
                {"name": "pages", "type": "Int32", "constraints": [{"op": "gt", "args": [".pages", 0]}]},
                {"name": "isbn", "type": "Int64"},
                {"name": "rating", "type": {"kind": "option", "of": "Float32"}},
                {"name": "available", "type": "Boolean"},
                {"name": "stock", "type": {"kind": "map", "of": "Int32"}},
            ],
        },
    ],
    "enums": [
        {
            "name": "LookupError",
            "variants": [
                {"name": "NotFound", "properties": [{"name": "title", "type": "String"}]},
                {"name": "Forbidden"},
            ],
        }
    ],
    "services": [
        {
            "name": "Catalog",
            "methods": [
                {
                    "name": "find",
                    "parameters": [{"name": "title", "type": "String"}],
                    "return_type": {"kind": "result", "error": "LookupError", "of": "Book"},
                },
                {
                    "name": "add",
                    "parameters": [
                        {"name": "book", "type": "Book"},
                        {"name": "copies", "type": "Int32",
                         "constraints": [gt(access("copies"), 0)]},
                    ],
                },
                {"name": "count", "return_type": "Int32"},
                {
                    "name": "describe",
                    "parameters": [{"name": "title", "type": "String"}],
                    "return_type": {"kind": "option", "of": "String"},
                },
                {"name": "explode", "return_type": "Int32"},
                {"name": "ping", "path": "/health/ping"},
            ],
        }
    ],
}


def geometry():
    return compile_module(GEOMETRY)


def address():
    return compile_module(ADDRESS)


def library():
    return compile_module(LIBRARY)
