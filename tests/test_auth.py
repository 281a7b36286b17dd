import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from ecoearn_admin import deps
from ecoearn_admin.main import app

PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def api(fresh_db, monkeypatch):
    async def signing_key():
        return PRIVATE_KEY.public_key()

    monkeypatch.setattr(deps, "get_signing_key", signing_key)
    return TestClient(app)


def bearer(claims, key=PRIVATE_KEY):
    return {"Authorization": "Bearer " + jwt.encode(claims, key, algorithm="RS256")}


def test_admin_token_opens_admin_routes(api):
    r = api.get("/bins", headers=bearer({"sub": "admin-1", "role": "admin"}))
    assert r.status_code == 200
    assert r.json() == []


def test_user_token_is_forbidden_on_admin_routes(api):
    r = api.get("/bins", headers=bearer({"sub": "U1", "role": "user"}))
    assert r.status_code == 403


def test_missing_bearer(api):
    r = api.get("/bins", headers={"Authorization": "Basic abc"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Missing token"


def test_token_signed_by_someone_else(api):
    other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    r = api.get("/bins", headers=bearer({"sub": "admin-1", "role": "admin"}, key=other))
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"


def test_token_without_role(api):
    r = api.get("/bins", headers=bearer({"sub": "admin-1"}))
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token payload"


@pytest.mark.parametrize("sub", ["", "  "])
def test_token_with_blank_subject(api, sub):
    r = api.post("/bins/scan", json={"token": "{}"}, headers=bearer({"sub": sub, "role": "user"}))
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token payload"
