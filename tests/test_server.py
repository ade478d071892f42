"""
Tests for wrpc.server using FastAPI's TestClient.
"""

import asyncio

import pytest
from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient

from wrpc import Err, Ok
from wrpc.server import mount_service

BOOK = {
    "title": "Dune",
    "pages": 412,
    "isbn": 9780441013593,
    "rating": None,
    "available": True,
    "stock": {"berlin": 2},
}



def _on_event_loop():
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True

class Catalog:
    def __init__(self, registry):
        self.registry = registry
        self.added = []
        self.pings = 0
        self.on_event_loop = {}

    def find(self, title):
        LookupError = self.registry.value_type("LookupError")
        if title == "secret":
            return Err(LookupError.Forbidden())
        if title != "Dune":
            return Err(LookupError.NotFound(title))
        Book = self.registry.value_type("Book")
        return Ok(Book(**BOOK))

    async def add(self, book, copies):
        self.on_event_loop["add"] = _on_event_loop()
        self.added.append((book.title, copies))

    def count(self):
        self.on_event_loop["count"] = _on_event_loop()
        return len(self.added)

    def describe(self, title):
        return "A desert planet" if title == "Dune" else None

    def explode(self):
        raise RuntimeError("boom")

    def ping(self):
        self.pings += 1


@pytest.fixture(scope="function")
def catalog(library_registry):
    return Catalog(library_registry)


@pytest.fixture(scope="function")
def client(library_registry, catalog):
    app = FastAPI()
    mount_service(app, "Catalog", catalog, library_registry)
    return TestClient(app, raise_server_exceptions=False)


class TestRoutes:
    def test_ok_result(self, client):
        response = client.post("/Catalog/find", json={"title": "Dune"})
        assert response.status_code == 200
        assert response.json() == {"type_": "Ok", "value": BOOK}

    def test_err_result(self, client):
        response = client.post("/Catalog/find", json={"title": "Emma"})
        assert response.status_code == 200
        assert response.json() == {
            "type_": "Err",
            "error": {"@type": "NotFound", "title": "Emma"},
        }

    def test_err_result_without_fields(self, client):
        response = client.post("/Catalog/find", json={"title": "secret"})
        assert response.json() == {"type_": "Err", "error": {"@type": "Forbidden"}}

    def test_no_return_type(self, client, catalog):
        response = client.post("/Catalog/add", json={"book": BOOK, "copies": 3})
        assert response.status_code == 204
        assert response.content == b""
        assert catalog.added == [("Dune", 3)]

    def test_no_parameters(self, client, catalog):
        client.post("/Catalog/add", json={"book": BOOK, "copies": 1})
        response = client.post("/Catalog/count")
        assert response.status_code == 200
        assert response.json() == 1

    def test_optional_return(self, client):
        assert client.post("/Catalog/describe", json={"title": "Dune"}).json() == "A desert planet"
        response = client.post("/Catalog/describe", json={"title": "Emma"})
        assert response.status_code == 200
        assert response.json() is None

    def test_explicit_path(self, client, catalog):
        response = client.post("/health/ping", json={})
        assert response.status_code == 204
        assert catalog.pings == 1
        assert client.post("/Catalog/ping").status_code == 404

    def test_get_not_allowed(self, client):
        assert client.get("/Catalog/count").status_code == 405


class TestRejections:
    def test_missing_parameter(self, client, catalog):
        response = client.post("/Catalog/add", json={"copies": 3})
        assert response.status_code == 400
        assert response.json() == [
            {"@type": "Field", "name": "book", "error": {"type_": "Required"}}
        ]
        assert catalog.added == []

    def test_nested_decode_error(self, client):
        response = client.post("/Catalog/add", json={"book": {**BOOK, "pages": "many"}, "copies": 3})
        assert response.status_code == 400
        assert response.json() == [
            {
                "@type": "Field",
                "name": "book",
                "error": {
                    "@type": "Field",
                    "name": "pages",
                    "error": {"type_": "Expected", "type": "INT32", "found": "many"},
                },
            }
        ]

    def test_validation_error(self, client, catalog):
        response = client.post("/Catalog/add", json={"book": BOOK, "copies": 0})
        assert response.status_code == 400
        assert response.json() == [
            {
                "@type": "Field",
                "name": "copies",
                "error": {"type_": "Invalid", "constraint": "(> .copies 0)"},
            }
        ]
        assert catalog.added == []

    def test_unparseable_body(self, client):
        response = client.post(
            "/Catalog/find", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json() == [{"type_": "Expected", "type": "OBJECT", "found": None}]

    def test_empty_body(self, client):
        response = client.post("/Catalog/find")
        assert response.status_code == 400
        assert response.json() == [{"type_": "Required"}]

    def test_number_out_of_float_range(self, client):
        response = client.post(
            "/Catalog/find", content=b'{"title": 1e400}', headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json() == [
            {
                "@type": "Field",
                "name": "title",
                "error": {"type_": "Expected", "type": "STRING", "found": None},
            }
        ]

    def test_nan_token(self, client):
        response = client.post(
            "/Catalog/find", content=b'{"title": NaN}', headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()[0]["error"]["found"] is None

    def test_body_not_an_object(self, client):
        response = client.post("/Catalog/find", json=[1])
        assert response.status_code == 400
        assert response.json() == [{"type_": "Expected", "type": "OBJECT", "found": [1]}]


class TestFaults:
    def test_exception_is_500_without_body(self, client):
        response = client.post("/Catalog/explode")
        assert response.status_code == 500
        assert response.content == b""


class TestMounting:
    def test_router(self, library_registry, catalog):
        router = APIRouter(prefix="/api")
        service = library_registry.module.get_service("Catalog")
        mount_service(router, service, catalog, library_registry)
        app = FastAPI()
        app.include_router(router)
        response = TestClient(app).post("/api/Catalog/count")
        assert response.json() == 0

    def test_unknown_service(self, library_registry, catalog):
        with pytest.raises(KeyError):
            mount_service(FastAPI(), "Shelf", catalog, library_registry)

    def test_missing_implementation(self, library_registry):
        with pytest.raises(AttributeError):
            mount_service(FastAPI(), "Catalog", object(), library_registry)


class TestInvocation:
    def test_plain_functions_leave_the_event_loop(self, client, catalog):
        client.post("/Catalog/add", json={"book": BOOK, "copies": 1})
        client.post("/Catalog/count")
        assert catalog.on_event_loop == {"add": True, "count": False}

    def test_unencodable_result_is_500(self, library_registry):
        class Broken(Catalog):
            def describe(self, title):
                return float("inf")

        app = FastAPI()
        mount_service(app, "Catalog", Broken(library_registry), library_registry)
        response = TestClient(app).post("/Catalog/describe", json={"title": "Dune"})
        assert response.status_code == 500
        assert response.content == b""
