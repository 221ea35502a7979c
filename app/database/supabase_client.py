"""
Supabase client access.

UniNote never talks to Postgres directly: every table read/write, count,
storage upload and auth call goes through a supabase client.

The shared anon client only verifies tokens (``auth.get_user(jwt=...)``,
which leaves its session untouched). Table and storage calls made for a
user run on a client scoped to that user's JWT so RLS applies to them,
and sign-in / refresh / sign-out run on a throwaway client so the
session they create never leaks into another request.
"""
from supabase import create_client, Client, ClientOptions
from app.config import settings
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


def _isolated_options(headers: Optional[Dict[str, str]] = None) -> ClientOptions:
    return ClientOptions(
        headers=headers or {},
        auto_refresh_token=False,
        persist_session=False,
    )


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            logger.info("Creating Supabase client for %s", settings.supabase_url)
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Used for role changes and operator scripts."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def create_isolated_client(cls) -> Client:
        """Fresh anon client with no stored session, for auth flows."""
        return create_client(settings.supabase_url, settings.supabase_key, options=_isolated_options())

    @classmethod
    def client_for_token(cls, token: str) -> Client:
        """Fresh client whose PostgREST and storage calls carry the user's JWT."""
        client = create_client(
            settings.supabase_url,
            settings.supabase_key,
            options=_isolated_options({"Authorization": f"Bearer {token}"}),
        )
        client.postgrest.auth(token)
        return client

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()


def get_auth_supabase() -> Client:
    return SupabaseClient.create_isolated_client()
