"""
Tests for wrpc.schema.
"""

import json

import pytest
from pydantic import ValidationError

from wrpc import Constraint, Method, Module, Parameter, Service, Type, load_module


class TestType:
    @pytest.mark.parametrize(
        "shorthand, kind",
        [
            ("String", "string"),
            ("Int32", "int32"),
            ("INT64", "int64"),
            ("float32", "float32"),
            ("Float64", "float64"),
            ("Boolean", "boolean"),
        ],
    )
    def test_scalar_shorthand(self, shorthand, kind):
        assert Type.model_validate(shorthand) == Type(kind=kind)

    def test_ref_shorthand(self):
        assert Type.model_validate("Point") == Type.ref("Point")

    def test_nested_shorthand(self):
        t = Type.model_validate({"kind": "list", "of": {"kind": "option", "of": "Point"}})
        assert t == Type.list_of(Type.option(Type.ref("Point")))

    def test_result(self):
        t = Type.result("LookupError", "Book")
        assert t.of == Type.ref("Book")
        assert t.error == Type.ref("LookupError")

    def test_is_optional(self):
        assert Type.option("String").is_optional
        assert not Type.scalar("string").is_optional

    @pytest.mark.parametrize(
        "data",
        [
            {"kind": "list"},
            {"kind": "option"},
            {"kind": "result", "of": "String"},
            {"kind": "ref"},
            {"kind": "tuple", "of": "String"},
            {"kind": "string", "extra": 1},
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ValidationError):
            Type.model_validate(data)

    def test_frozen(self):
        t = Type.scalar("string")
        with pytest.raises(ValidationError):
            t.kind = "int32"


class TestConstraint:
    def test_bare_args(self):
        c = Constraint.model_validate({"op": "eq", "args": [".country", "DE"]})
        assert c.args[0] == Constraint(op="access", name="country")
        assert c.args[1] == Constraint(op="string", value="DE")

    def test_bare_number_and_boolean(self):
        c = Constraint.model_validate({"op": "eq", "args": [5, True]})
        assert c.args[0].op == "number"
        assert c.args[0].value == 5
        assert c.args[1] == Constraint(op="boolean", value=True)

    @pytest.mark.parametrize(
        "data",
        [
            {"op": "not", "args": []},
            {"op": "len", "args": [".a", ".b"]},
            {"op": "access"},
            {"op": "number"},
            {"op": "matches", "args": []},
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ValidationError):
            Constraint.model_validate(data)


class TestService:
    def test_default_path(self):
        service = Service(name="Catalog", methods=[Method(name="find")])
        assert service.method_path(service.methods[0]) == "/Catalog/find"

    def test_explicit_path(self):
        service = Service(name="Catalog", methods=[Method(name="ping", path="/health/ping")])
        assert service.method_path(service.methods[0]) == "/health/ping"

    def test_request_record(self):
        method = Method(
            name="find",
            parameters=[Parameter(name="title", type="String", depends_on=[])],
        )
        request = method.as_request()
        assert request.name == "FindRequest"
        assert [p.name for p in request.properties] == ["title"]
        assert request.properties[0].required

    def test_sorted_methods(self):
        service = Service(name="S", methods=[Method(name="b"), Method(name="a")])
        assert [m.name for m in service.get_sorted_methods()] == ["a", "b"]
        assert service.get_method("a").name == "a"
        assert service.get_method("c") is None


class TestModule:
    def test_lookup(self):
        module = Module.model_validate(
            {
                "records": [{"name": "Point", "properties": [{"name": "x", "type": "Int32"}]}],
                "enums": [{"name": "Color", "variants": [{"name": "RED"}]}],
                "services": [{"name": "Svc", "methods": [{"name": "go"}]}],
            }
        )
        assert module.get_record("Point").properties[0].type == Type.scalar("int32")
        assert module.get_enum("Color").is_simple
        assert module.get_method("Svc", "go").name == "go"
        assert module.get_method("Nope", "go") is None

    def test_load_module(self, tmp_path):
        path = tmp_path / "schema.json"
        path.write_text(
            json.dumps(
                {"records": [{"name": "Point", "properties": [{"name": "x", "type": "Int32"}]}]}
            ),
            encoding="utf-8",
        )
        module = load_module(path)
        assert module.records[0].name == "Point"

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            Module.model_validate({"records": [], "typedefs": []})
