from __future__ import annotations

import jwt
import pytest
from starlette.requests import Request

from portale.errors import AuthenticationError
from portale.models.security import Role, User
from portale.security.auth import (
    JWT_ALGORITHM,
    create_access_token,
    decode_access_token,
    extract_user_id,
    hash_password,
    verify_password,
)
from portale.security.config import SecurityConfig, SecurityConfigModel

SECRET = "test-secret"


def _request(headers: dict[str, str]) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/companies",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "query_string": b"",
    }
    return Request(scope)


def test_token_roundtrip_carries_user_id_and_role():
    user = User(id=42, role=Role.SPORTELLO_LAVORO)

    token = create_access_token(user, secret=SECRET, ttl_minutes=5)

    assert decode_access_token(token, secret=SECRET) == 42
    claims = jwt.decode(token, SECRET, algorithms=[JWT_ALGORITHM])
    assert claims["sub"] == "42"
    assert claims["role"] == "sportello_lavoro"


def test_expired_token_is_rejected():
    token = create_access_token(User(id=1, role=Role.ADMIN), secret=SECRET, ttl_minutes=-1)

    with pytest.raises(AuthenticationError, match="Token expired"):
        decode_access_token(token, secret=SECRET)


def test_token_with_wrong_signature_is_rejected():
    token = create_access_token(User(id=1, role=Role.ADMIN), secret="other")

    with pytest.raises(AuthenticationError, match="Token is not valid"):
        decode_access_token(token, secret=SECRET)


def test_extract_user_id_header_handling():
    config = SecurityConfig(SecurityConfigModel())

    assert extract_user_id(_request({}), config) is None

    with pytest.raises(AuthenticationError):
        extract_user_id(_request({"Authorization": "Token abc"}), config)
    with pytest.raises(AuthenticationError):
        extract_user_id(_request({"Authorization": "Bearer "}), config)

    token = create_access_token(User(id=7, role=Role.SEGNALATORI))
    assert extract_user_id(_request({"Authorization": f"Bearer {token}"}), config) == 7


def test_password_hashing():
    hashed = hash_password("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret-pass", "not-a-hash")
