import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from healthapp.app import create_app
from healthapp.auth.passwords import PasswordHasher
from healthapp.auth.session import SessionManager
from healthapp.auth.users import CredentialStore
from healthapp.config import Settings
from healthapp.infra.document_store import DocumentCollection


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(data_dir=tmp_path / "data", secret_key="test-secret")


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    # Lowest cost: the tests check behaviour, not hash strength.
    return PasswordHasher(time_cost=1)


@pytest.fixture()
def users(tmp_path: Path) -> DocumentCollection:
    return DocumentCollection(tmp_path / "users.yml")


@pytest.fixture()
def credentials(users, hasher) -> CredentialStore:
    return CredentialStore(users, hasher)


@pytest.fixture()
def sessions() -> SessionManager:
    return SessionManager("test-secret")


@pytest.fixture()
def app(settings, hasher):
    return create_app(settings, hasher=hasher)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def login():
    """Register (if needed) and log a TestClient in; returns the final response."""

    def _login(client: TestClient, username: str, password: str):
        client.post("/register", data={"username": username, "password": password})
        r = client.post("/login", data={"username": username, "password": password})
        assert r.status_code == 200
        return r

    return _login
