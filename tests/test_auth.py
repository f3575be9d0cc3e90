import time

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from starlette.requests import Request

import auth
import config


@pytest.fixture(scope="module")
def key_pair():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_key, public_pem


def make_token(private_key, **claims):
    payload = {"sub": "user_2abc", "exp": int(time.time()) + 60, "azp": "http://localhost:3000"}
    payload.update(claims)
    return jwt.encode(payload, private_key, algorithm="RS256")


def make_request(headers=None, cookies=None):
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers})


def test_verify_returns_subject(key_pair):
    private_key, public_pem = key_pair

    assert auth.verify_session_token(make_token(private_key), public_pem) == "user_2abc"


def test_verify_rejects_expired_token(key_pair):
    private_key, public_pem = key_pair
    token = make_token(private_key, exp=int(time.time()) - 120)

    with pytest.raises(jwt.ExpiredSignatureError):
        auth.verify_session_token(token, public_pem)


def test_verify_rejects_token_signed_by_another_key(key_pair):
    _, public_pem = key_pair
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    with pytest.raises(jwt.InvalidSignatureError):
        auth.verify_session_token(make_token(other_key), public_pem)


def test_verify_checks_authorized_party(key_pair):
    private_key, public_pem = key_pair
    token = make_token(private_key, azp="https://evil.test")

    with pytest.raises(jwt.InvalidTokenError):
        auth.verify_session_token(token, public_pem, ["http://localhost:3000"])


def test_token_read_from_bearer_header_or_cookie():
    assert auth.extract_session_token(make_request({"Authorization": "Bearer abc"})) == "abc"
    assert auth.extract_session_token(make_request(cookies={"__session": "def"})) == "def"
    assert auth.extract_session_token(make_request()) is None


def test_current_user_from_cookie(key_pair, monkeypatch):
    private_key, public_pem = key_pair
    monkeypatch.setattr(config, "CLERK_JWT_KEY", public_pem)
    monkeypatch.setattr(config, "CLERK_AUTHORIZED_PARTIES", [])

    request = make_request(cookies={"__session": make_token(private_key)})

    assert auth.get_current_user_id(request) == "user_2abc"


def test_current_user_rejects_garbage(key_pair, monkeypatch):
    _, public_pem = key_pair
    monkeypatch.setattr(config, "CLERK_JWT_KEY", public_pem)

    with pytest.raises(HTTPException) as exc_info:
        auth.get_current_user_id(make_request({"Authorization": "Bearer not.a.jwt"}))

    assert exc_info.value.status_code == 401


def test_missing_key_is_a_server_error(key_pair, monkeypatch):
    private_key, _ = key_pair
    monkeypatch.setattr(config, "CLERK_JWT_KEY", "")

    with pytest.raises(HTTPException) as exc_info:
        auth.get_current_user_id(make_request({"Authorization": f"Bearer {make_token(private_key)}"}))

    assert exc_info.value.status_code == 500
    assert "CLERK_JWT_KEY" in exc_info.value.detail
