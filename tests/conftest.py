"""
Shared fixtures: every test gets its own app, SQLite file, upload directory
and log directory under pytest's tmp_path.
"""
import pytest
from fastapi.testclient import TestClient

from trade_journal.config import Settings
from trade_journal.main import create_app

TEST_SECRET = "test-secret-key"
DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'journal.db'}",
        jwt_secret=TEST_SECRET,
        jwt_expiration=3600,
        upload_dir=str(tmp_path / "uploads"),
        log_dir=str(tmp_path / "logs"),
        cors_origins=["*"],
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def upload_dir(settings):
    from pathlib import Path
    return Path(settings.upload_dir)


def register(client, username, email, password=DEFAULT_PASSWORD):
    return client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
    )


def login(client, email, password=DEFAULT_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client):
    """Register and log in a user, returning the auth headers"""

    def _make_user(username="alice", email=None):
        email = email or f"{username}@mail.com"
        response = register(client, username, email)
        assert response.status_code == 201, response.text
        response = login(client, email)
        assert response.status_code == 200, response.text
        return bearer(response.json()["token"])

    return _make_user


@pytest.fixture
def add_trade(client):
    def _add_trade(headers, **fields):
        body = {"pair": "EURUSD", "side": "BUY", "entry": 1.0850}
        body.update(fields)
        response = client.post("/api/trades", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["tradeId"]

    return _add_trade
