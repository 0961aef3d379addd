"""
Unit tests for token parsing and validation.
"""

import uuid
from datetime import timedelta

import pytest
from jose import jwt

from messaging_service.dependencies.user_deps import (
    get_current_user_token_data,
    require_service_token,
)
from messaging_service.exceptions import Forbidden, NotAuthenticated
from messaging_service.security import AuthError, decode_any_jwt, parse_bearer

from tests.utils.auth import SERVICE_ID, USER_A, create_service_token, create_user_token


def test_parse_bearer_from_header():
    assert parse_bearer({"authorization": "Bearer abc"}) == "abc"
    assert parse_bearer({"Authorization": "bearer xyz"}) == "xyz"


def test_parse_bearer_from_query_param():
    assert parse_bearer({}, {"token": "from-query"}) == "from-query"


def test_parse_bearer_rejects_other_schemes():
    assert parse_bearer({"authorization": "Basic dXNlcjpwYXNz"}) is None
    assert parse_bearer({}, {}) is None


def test_decode_any_accepts_user_and_service_tokens():
    assert decode_any_jwt(create_user_token(USER_A))["sub"] == str(USER_A)
    assert decode_any_jwt(create_service_token())["sub"] == str(SERVICE_ID)


def test_decode_any_rejects_foreign_signature():
    token = jwt.encode({"sub": str(USER_A)}, "not-our-secret", algorithm="HS256")
    with pytest.raises(AuthError):
        decode_any_jwt(token)


def test_decode_any_rejects_expired_token():
    token = create_user_token(USER_A, expires_in=timedelta(minutes=-5))
    with pytest.raises(AuthError):
        decode_any_jwt(token)


def test_token_data_dependency():
    token_data = get_current_user_token_data(create_user_token(USER_A, roles=["manager"]))
    assert token_data.user_id == USER_A
    assert token_data.roles == ["manager"]


def test_token_data_dependency_requires_token():
    with pytest.raises(NotAuthenticated):
        get_current_user_token_data(None)
    with pytest.raises(NotAuthenticated):
        get_current_user_token_data("garbage")


def test_service_token_dependency_rejects_user_tokens():
    assert require_service_token(create_service_token()).user_id == SERVICE_ID
    with pytest.raises(Forbidden):
        require_service_token(create_user_token(uuid.uuid4()))
    with pytest.raises(NotAuthenticated):
        require_service_token(None)
