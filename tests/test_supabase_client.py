from types import SimpleNamespace

import pytest

from app.core.dependencies import get_user_supabase
from app.database import supabase_client
from app.database.supabase_client import SupabaseClient


class RecordingPostgrest:
    def __init__(self):
        self.tokens = []

    def auth(self, token):
        self.tokens.append(token)


@pytest.fixture
def created(monkeypatch):
    clients = []

    def fake_create_client(url, key, options=None):
        client = SimpleNamespace(url=url, key=key, options=options, postgrest=RecordingPostgrest())
        clients.append(client)
        return client

    monkeypatch.setattr(supabase_client, "create_client", fake_create_client)
    SupabaseClient.reset_client()
    yield clients
    SupabaseClient.reset_client()


class TestClientIsolation:
    def test_each_token_gets_its_own_client(self, created):
        first = get_user_supabase("token-a")
        second = get_user_supabase("token-b")

        assert first is not second
        assert first.options.headers["Authorization"] == "Bearer token-a"
        assert second.options.headers["Authorization"] == "Bearer token-b"
        assert first.postgrest.tokens == ["token-a"]
        assert second.postgrest.tokens == ["token-b"]

    def test_user_clients_never_persist_sessions(self, created):
        client = get_user_supabase("token-a")
        assert client.options.persist_session is False
        assert client.options.auto_refresh_token is False

    def test_auth_flows_get_a_fresh_client(self, created):
        shared = supabase_client.get_supabase()
        auth_client = supabase_client.get_auth_supabase()

        assert auth_client is not shared
        assert auth_client is not supabase_client.get_auth_supabase()
        assert "Authorization" not in auth_client.options.headers
        assert supabase_client.get_supabase() is shared
