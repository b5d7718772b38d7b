"""Shared pytest fixtures and configuration."""

import os
import threading

import pytest
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("TASK_STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")

from src.services import account_store, task_store  # noqa: E402
from src.services.task_store import InMemoryTaskStore  # noqa: E402
from tests.utils.fakes import FakeSupabaseClient, FakeAuthUser  # noqa: E402


OWNER_A = "11111111-aaaa-4aaa-8aaa-aaaaaaaaaaaa"
OWNER_B = "22222222-bbbb-4bbb-8bbb-bbbbbbbbbbbb"


@pytest.fixture
def owner_a():
    return OWNER_A


@pytest.fixture
def owner_b():
    return OWNER_B


@pytest.fixture
def memory_store():
    """Fresh in-memory task store."""
    return InMemoryTaskStore()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Each test starts with fresh store singletons."""
    task_store.reset_task_store()
    account_store.reset_account_store()
    yield
    task_store.reset_task_store()
    account_store.reset_account_store()


@pytest.fixture
def fake_supabase(monkeypatch):
    """Fake Supabase client recording every PostgREST call."""
    client = FakeSupabaseClient()
    monkeypatch.setattr("src.services.supabase_client._client", client)
    return client


@pytest.fixture
def token_accounts(monkeypatch):
    """
    Map bearer tokens to Supabase Auth users.

    Tests add entries: token_accounts["token-a"] = FakeAuthUser(id=OWNER_A).
    Unknown tokens are rejected the way Supabase rejects them.
    """
    users: dict[str, FakeAuthUser] = {
        "token-a": FakeAuthUser(id=OWNER_A, email="alice@example.com", user_metadata={"first_name": "Alice"}),
        "token-b": FakeAuthUser(id=OWNER_B, email="bob@example.com", user_metadata={"first_name": "Bob"}),
    }

    client = FakeSupabaseClient(auth_users=users)
    monkeypatch.setattr("src.services.supabase_client._client", client)
    return users


@pytest.fixture
def live_server(token_accounts):
    """Run every endpoint on a local threaded HTTP server backed by memory stores."""
    from api._dev import build_server

    server = build_server("127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    try:
        yield f"http://{host}:{port}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
