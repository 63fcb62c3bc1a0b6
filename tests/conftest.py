from collections.abc import Iterator

import pytest
import structlog

from tests.factories import FakeLookup, FakeTransport


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fake_lookup() -> FakeLookup:
    return FakeLookup(
        members={"1": "Jo", "2": "John", "3": "Ann"},
        roles={"10": "Admins"},
        channels={"20": "general"},
    )
