"""Application settings read from environment variables."""

import os

from src.utils.errors import ConfigurationError


class AppConfig:
    """Environment-backed settings.

    Values are read on every access so serverless cold starts and tests pick up
    the current environment.
    """

    @staticmethod
    def app_env() -> str:
        return os.environ.get("APP_ENV", "production").lower()

    @staticmethod
    def service_name() -> str:
        return os.environ.get("SERVICE_NAME", "taskboard-backend")

    @staticmethod
    def task_store_backend() -> str:
        backend = os.environ.get("TASK_STORE_BACKEND", "supabase").strip().lower()
        if backend not in ("supabase", "memory"):
            raise ConfigurationError(f"Unknown TASK_STORE_BACKEND: {backend}")
        return backend

    @staticmethod
    def tasks_table() -> str:
        return os.environ.get("TASKS_TABLE", "tasks")

    @staticmethod
    def accounts_table() -> str:
        return os.environ.get("ACCOUNTS_TABLE", "accounts")

    @staticmethod
    def default_page_size() -> int:
        try:
            size = int(os.environ.get("DEFAULT_PAGE_SIZE", "10"))
        except ValueError:
            raise ConfigurationError("DEFAULT_PAGE_SIZE must be an integer")
        if size < 1:
            raise ConfigurationError("DEFAULT_PAGE_SIZE must be positive")
        return size

    @staticmethod
    def dev_account_id() -> str:
        return os.environ.get("AUTH_DEV_ACCOUNT_ID", "").strip()

    @staticmethod
    def supabase_credentials() -> tuple[str, str]:
        url = os.environ.get("SUPABASE_URL", "").strip()
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()
        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        return url, key
