"""Request authentication against Supabase Auth."""

import logging
from typing import Any, Mapping, Optional

from supabase import AuthApiError

from src.models.account import Identity
from src.services.supabase_client import get_supabase_client
from src.utils.config import AppConfig
from src.utils.errors import SupabaseError, UnauthenticatedError
from src.utils.logging import mask_account_id

logger = logging.getLogger(__name__)


def should_bypass_verification() -> bool:
    """Check if token verification should be bypassed (local development only)."""
    if AppConfig.app_env() not in ("development", "local"):
        return False
    return bool(AppConfig.dev_account_id())


def extract_bearer_token(headers: Mapping[str, Any]) -> Optional[str]:
    """Return the token of an `Authorization: Bearer ...` header, if any."""
    value = headers.get("Authorization") or headers.get("authorization") or ""
    scheme, _, token = value.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def identity_from_user(user: Any) -> Identity:
    """Map a Supabase Auth user onto the claims we keep."""
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(
        account_id=str(user.id),
        email=getattr(user, "email", None),
        first_name=metadata.get("first_name") or metadata.get("given_name"),
        last_name=metadata.get("last_name") or metadata.get("family_name"),
        profile_image_url=metadata.get("avatar_url") or metadata.get("picture"),
    )


def verify_access_token(token: str) -> Identity:
    """
    Verify an access token with Supabase Auth.

    Raises UnauthenticatedError for expired, revoked or malformed tokens.
    Outages and server-side auth failures propagate as errors (500).
    """
    client = get_supabase_client()
    try:
        response = client.auth.get_user(token)
    except AuthApiError as e:
        if not 400 <= (e.status or 0) < 500:
            raise SupabaseError(f"Auth provider error: {e.status} {e.message}")
        logger.warning(f"Access token rejected: status={e.status} code={e.code}")
        raise UnauthenticatedError("Invalid or expired session")

    user = getattr(response, "user", None)
    if user is None or not getattr(user, "id", None):
        raise UnauthenticatedError("Invalid or expired session")
    return identity_from_user(user)


def authenticate_request(headers: Mapping[str, Any]) -> Identity:
    """Resolve the requesting account, or raise UnauthenticatedError."""
    token = extract_bearer_token(headers)

    if token is None:
        if should_bypass_verification():
            account_id = AppConfig.dev_account_id()
            logger.debug(f"Authentication bypassed (dev mode) account={mask_account_id(account_id)}")
            return Identity(account_id=account_id)
        raise UnauthenticatedError("Missing bearer token")

    return verify_access_token(token)
