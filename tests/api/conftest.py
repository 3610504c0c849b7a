import pytest
from fastapi.testclient import TestClient

from ridedispatch.api.app import create_app
from ridedispatch.api.auth import StaticTokenIdentity
from ridedispatch.settings import get_settings


@pytest.fixture
def app(dispatch_service, update_bus):
    identity = StaticTokenIdentity({"token-alice": "user-alice", "token-bob": "user-bob"})
    return create_app(dispatch_service, update_bus, identity, settings=get_settings())


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)
