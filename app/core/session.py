"""
Request-scoped session context.

Built once per request from the bearer token and injected into route
handlers, so no handler reaches for ambient global session state.
"""
from supabase import Client
from typing import Any, Dict, Optional
import logging

from app.core import roles

logger = logging.getLogger(__name__)


def load_profile(supabase: Client, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        result = supabase.table("profiles")\
            .select("*")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None
    except Exception as e:
        logger.error(f"Error fetching profile: {e}")
        return None


class SessionContext:
    def __init__(self, user: Dict[str, Any], profile: Optional[Dict[str, Any]], token: Optional[str] = None):
        self.user = user
        self.profile = profile
        self.token = token

    @classmethod
    def load(cls, supabase: Client, user: Dict[str, Any], token: Optional[str] = None) -> "SessionContext":
        return cls(user, load_profile(supabase, user["id"]), token)

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def principal(self) -> Dict[str, Any]:
        """Profile for role checks; a bare id when the profile row is missing"""
        return self.profile or {"id": self.user_id}

    @property
    def role(self) -> Optional[str]:
        return self.profile.get("user_role") if self.profile else None

    @property
    def is_universal_admin(self) -> bool:
        return roles.is_universal_admin(self.profile)

    def has_role(self, required_role: str) -> bool:
        return roles.has_role(self.profile, required_role)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "profile": self.profile,
            "role": self.role,
            "is_universal_admin": self.is_universal_admin,
            "is_group_admin": roles.has_global_group_admin_role(self.profile),
        }
