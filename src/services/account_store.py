"""Account mirror - upsert identity-provider users into the accounts table."""

import threading
from datetime import datetime, timezone
from typing import Optional

from src.models.account import Account, Identity
from src.services.supabase_client import SupabaseClient
from src.utils.config import AppConfig
from src.utils.errors import SupabaseError
from src.utils.logging import get_structured_logger, mask_account_id

logger = get_structured_logger(__name__)


class AccountStore:
    """Accounts in Supabase, keyed by identity provider user ID."""

    def __init__(self, table: Optional[str] = None):
        self.table = table or AppConfig.accounts_table()

    async def get_account(self, account_id: str) -> Optional[Account]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.table).select("*").eq("id", account_id).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to get account: {e}")

        return Account.model_validate(result.data[0]) if result.data else None

    async def upsert_account(self, identity: Identity) -> Account:
        """Insert the account or refresh its profile fields and updated_at."""
        record = identity.to_account_record()
        record["updated_at"] = datetime.now(timezone.utc).isoformat()

        async with SupabaseClient() as client:
            try:
                result = client.table(self.table).upsert(record, on_conflict="id").execute()
            except Exception as e:
                raise SupabaseError(f"Failed to upsert account: {e}")

        if not result.data:
            raise SupabaseError("Failed to upsert account: no data returned")
        logger.info("Account upserted", account=mask_account_id(identity.account_id))
        return Account.model_validate(result.data[0])

    async def ensure_account(self, identity: Identity) -> None:
        """Insert the account if it is missing; an existing row is left untouched."""
        async with SupabaseClient() as client:
            try:
                client.table(self.table).upsert(
                    identity.to_account_record(), on_conflict="id", ignore_duplicates=True
                ).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to ensure account: {e}")


class InMemoryAccountStore(AccountStore):
    """Process-local accounts for development and tests."""

    def __init__(self):
        self._accounts: dict[str, Account] = {}
        self._lock = threading.Lock()

    async def get_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(account_id)

    async def upsert_account(self, identity: Identity) -> Account:
        now = datetime.now(timezone.utc)
        with self._lock:
            existing = self._accounts.get(identity.account_id)
            created_at = existing.created_at if existing else now
            account = Account(
                **identity.to_account_record(),
                created_at=created_at,
                updated_at=now,
            )
            self._accounts[account.id] = account
        return account

    async def ensure_account(self, identity: Identity) -> None:
        with self._lock:
            if identity.account_id in self._accounts:
                return
        await self.upsert_account(identity)


_account_store: Optional[AccountStore] = None
_account_store_lock = threading.Lock()


def get_account_store() -> AccountStore:
    """Get or create the account store matching TASK_STORE_BACKEND."""
    global _account_store

    with _account_store_lock:
        if _account_store is None:
            if AppConfig.task_store_backend() == "memory":
                _account_store = InMemoryAccountStore()
            else:
                _account_store = AccountStore()

    return _account_store


def reset_account_store() -> None:
    global _account_store
    _account_store = None
