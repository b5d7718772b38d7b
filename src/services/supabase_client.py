"""Supabase client wrapper with async context manager support."""

import logging
from typing import Optional

from supabase import create_client, Client
from supabase.client import ClientOptions

from src.utils.config import AppConfig
from src.utils.errors import ConfigurationError, SupabaseError

logger = logging.getLogger(__name__)

# Global client instance (one per warm serverless instance)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        try:
            url, key = AppConfig.supabase_credentials()
        except ConfigurationError as e:
            raise SupabaseError(str(e))

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False
