"""Tests for request authentication."""

import httpx
import pytest
from supabase import AuthApiError

from src.services.auth import (
    authenticate_request,
    extract_bearer_token,
    identity_from_user,
    should_bypass_verification,
    verify_access_token,
)
from src.services.supabase_client import get_supabase_client
from src.utils.errors import SupabaseError, UnauthenticatedError
from tests.utils.fakes import FakeAuthUser


@pytest.mark.unit
@pytest.mark.parametrize("headers,expected", [
    ({"Authorization": "Bearer abc.def"}, "abc.def"),
    ({"authorization": "bearer   abc "}, "abc"),
    ({"Authorization": "Basic dXNlcjpwYXNz"}, None),
    ({"Authorization": "Bearer "}, None),
    ({}, None),
])
def test_extract_bearer_token(headers, expected):
    assert extract_bearer_token(headers) == expected


@pytest.mark.unit
def test_verify_access_token_returns_identity(token_accounts, owner_a):
    identity = verify_access_token("token-a")

    assert identity.account_id == owner_a
    assert identity.email == "alice@example.com"
    assert identity.first_name == "Alice"


@pytest.mark.unit
def test_verify_access_token_rejects_unknown_token(token_accounts):
    with pytest.raises(UnauthenticatedError):
        verify_access_token("expired-token")


@pytest.mark.unit
def test_missing_token_is_unauthenticated(token_accounts):
    with pytest.raises(UnauthenticatedError):
        authenticate_request({})


@pytest.mark.unit
def test_authenticate_request_uses_bearer_token(token_accounts, owner_b):
    identity = authenticate_request({"Authorization": "Bearer token-b"})
    assert identity.account_id == owner_b


@pytest.mark.unit
def test_identity_from_user_reads_common_metadata_keys():
    user = FakeAuthUser(
        id="u-1",
        email="carol@example.com",
        user_metadata={"given_name": "Carol", "family_name": "Diaz", "picture": "https://img/c.png"},
    )

    identity = identity_from_user(user)

    assert identity.first_name == "Carol"
    assert identity.last_name == "Diaz"
    assert identity.profile_image_url == "https://img/c.png"
    assert identity.has_profile()


@pytest.mark.unit
def test_bypass_only_in_development_with_account(monkeypatch):
    monkeypatch.setenv("AUTH_DEV_ACCOUNT_ID", "dev-user")
    monkeypatch.setenv("APP_ENV", "production")
    assert should_bypass_verification() is False

    monkeypatch.setenv("APP_ENV", "development")
    assert should_bypass_verification() is True

    monkeypatch.delenv("AUTH_DEV_ACCOUNT_ID")
    assert should_bypass_verification() is False


@pytest.mark.unit
def test_dev_bypass_authenticates_as_configured_account(monkeypatch):
    monkeypatch.setenv("APP_ENV", "local")
    monkeypatch.setenv("AUTH_DEV_ACCOUNT_ID", "dev-user")

    identity = authenticate_request({})

    assert identity.account_id == "dev-user"
    assert not identity.has_profile()


@pytest.mark.unit
def test_auth_provider_outage_is_not_unauthenticated(token_accounts):
    get_supabase_client().auth.error = httpx.ConnectError("connection refused")

    with pytest.raises(httpx.ConnectError):
        verify_access_token("token-a")


@pytest.mark.unit
def test_auth_provider_server_error_is_supabase_error(token_accounts):
    get_supabase_client().auth.error = AuthApiError("database error querying schema", 500, "unexpected_failure")

    with pytest.raises(SupabaseError):
        verify_access_token("token-a")


@pytest.mark.unit
@pytest.mark.parametrize("status", [401, 403])
def test_rejected_token_statuses_are_unauthenticated(token_accounts, status):
    get_supabase_client().auth.error = AuthApiError("invalid JWT", status, "bad_jwt")

    with pytest.raises(UnauthenticatedError):
        verify_access_token("token-a")
