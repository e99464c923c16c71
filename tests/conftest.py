from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from taskboard.kv_store import InMemoryKeyValueStore
from taskboard.main import create_app
from tests.fakes import (
    USER_A_ID,
    USER_A_TOKEN,
    USER_B_ID,
    USER_B_TOKEN,
    FakeIdentityProvider,
)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider(
        tokens={USER_A_TOKEN: USER_A_ID, USER_B_TOKEN: USER_B_ID}
    )


@pytest.fixture
def client(store, identity):
    app = create_app(store=store, identity=identity)
    with TestClient(app) as test_client:
        yield test_client
