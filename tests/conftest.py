"""Shared fixtures: the real app wired to in-memory fakes."""
import pytest
from fastapi.testclient import TestClient

from config import Settings
from fakes import FakeIdentityProvider, FakeStore
from main import create_app


@pytest.fixture
def settings():
    return Settings(
        admin_emails=frozenset({"head.proctor@school.edu"}),
        secret_key="test-secret",
        jwt_exp_min=5,
        web_config=(("apiKey", "key-123"), ("projectId", "proctored-system"), ("appId", None)),
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def client(settings, store, identity):
    app = create_app(settings, store=store, identity=identity)
    return TestClient(app)
