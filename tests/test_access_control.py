"""
Bearer token gate on protected routes: 401 without a token, 403 for one
that is expired, tampered with or signed by someone else.
"""
import base64
import json
from types import SimpleNamespace

import pytest

from conftest import TEST_SECRET, bearer
from trade_journal.services.token_issuer import TokenIssuer

PROTECTED_ROUTES = [
    ("GET", "/api/trades"),
    ("POST", "/api/trades"),
    ("DELETE", "/api/trades/1"),
    ("GET", "/api/stats"),
    ("GET", "/api/auth/me"),
]


def call(client, method, path, headers=None):
    if method == "POST":
        return client.post(path, json={"pair": "EURUSD", "side": "BUY", "entry": 1.1}, headers=headers)
    return client.request(method, path, headers=headers)


def forge_payload(token, **changes):
    """Swap the payload of a signed token while keeping the old signature"""
    header, payload, signature = token.split(".")
    padded = payload + "=" * (-len(payload) % 4)
    claims = json.loads(base64.urlsafe_b64decode(padded))
    claims.update(changes)
    forged = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=").decode()
    return f"{header}.{forged}.{signature}"


@pytest.fixture
def alice_token(client, make_user):
    headers = make_user("alice")
    return headers["Authorization"].split(" ", 1)[1]


@pytest.mark.parametrize("method,path", PROTECTED_ROUTES)
class TestProtectedRoutes:
    def test_missing_token_is_unauthorized(self, client, method, path):
        response = call(client, method, path)

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_non_bearer_scheme_is_unauthorized(self, client, method, path):
        response = call(client, method, path, headers={"Authorization": "Basic YWxpY2U6c2VjcmV0"})

        assert response.status_code == 401

    def test_garbage_token_is_forbidden(self, client, method, path):
        response = call(client, method, path, headers=bearer("not-a-jwt"))

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden"}

    def test_expired_token_is_forbidden(self, client, alice_token, method, path):
        user = SimpleNamespace(id=1, username="alice", email="alice@mail.com")
        expired = TokenIssuer(TEST_SECRET, expiration_seconds=-60).issue(user)

        response = call(client, method, path, headers=bearer(expired))

        assert response.status_code == 403

    def test_tampered_token_is_forbidden(self, client, alice_token, method, path):
        forged = forge_payload(alice_token, id=999, sub="999")

        response = call(client, method, path, headers=bearer(forged))

        assert response.status_code == 403

    def test_token_from_other_secret_is_forbidden(self, client, alice_token, method, path):
        user = SimpleNamespace(id=1, username="alice", email="alice@mail.com")
        foreign = TokenIssuer("some-other-secret").issue(user)

        response = call(client, method, path, headers=bearer(foreign))

        assert response.status_code == 403


def test_gate_runs_before_validation(client):
    # No token and an invalid body: the auth failure wins
    response = client.post("/api/trades", json={})

    assert response.status_code == 401


def test_public_routes_need_no_token(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").status_code == 200
