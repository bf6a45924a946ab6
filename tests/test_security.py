import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from jose import jwk, jwt

from app.core import security


@pytest.fixture(scope="module")
def signing_key():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = "key-1"
    return private_pem, public_jwk


@pytest.fixture
def jwks(monkeypatch, signing_key):
    keys = {"keys": [signing_key[1]]}
    fetches = {"n": 0}

    def fake_get_jwks():
        fetches["n"] += 1
        return keys

    fake_get_jwks.cache_clear = lambda: None
    monkeypatch.setattr(security, "get_jwks", fake_get_jwks)
    return fetches


def make_token(private_pem, kid="key-1", audience="authenticated", **claims):
    payload = {
        "sub": "00000000-0000-0000-0000-000000000001",
        "email": "ada@example.com",
        "aud": audience,
        "exp": int(time.time()) + 3600,
        **claims,
    }
    return jwt.encode(payload, private_pem, algorithm="RS256", headers={"kid": kid})


def test_valid_token_returns_claims(jwks, signing_key):
    claims = security.verify_jwt(make_token(signing_key[0]))

    assert claims["sub"] == "00000000-0000-0000-0000-000000000001"
    assert claims["email"] == "ada@example.com"


def test_wrong_audience_is_rejected(jwks, signing_key):
    with pytest.raises(HTTPException) as exc:
        security.verify_jwt(make_token(signing_key[0], audience="anon"))

    assert exc.value.status_code == 401


def test_expired_token_is_rejected(jwks, signing_key):
    with pytest.raises(HTTPException) as exc:
        security.verify_jwt(make_token(signing_key[0], exp=int(time.time()) - 60))

    assert exc.value.status_code == 401


def test_unknown_kid_refreshes_once_then_fails(jwks, signing_key):
    with pytest.raises(HTTPException) as exc:
        security.verify_jwt(make_token(signing_key[0], kid="rotated"))

    assert exc.value.status_code == 401
    assert jwks["n"] == 2


def test_symmetric_tokens_are_rejected(jwks):
    token = jwt.encode({"sub": "x", "aud": "authenticated"}, "shared-secret", algorithm="HS256")

    with pytest.raises(HTTPException) as exc:
        security.verify_jwt(token)

    assert exc.value.status_code == 401
    assert jwks["n"] == 0


def test_missing_bearer_token():
    with pytest.raises(HTTPException) as exc:
        security.require_auth(None)

    assert exc.value.status_code == 401
