import pytest

from schemas import address, geometry, library

from wrpc.codec import Registry


@pytest.fixture(scope="function")
def geometry_registry() -> Registry:
    return geometry()


@pytest.fixture(scope="function")
def address_registry() -> Registry:
    return address()


@pytest.fixture(scope="function")
def library_registry() -> Registry:
    return library()
