"""
Role and approval helpers.

Role checks here only gate what the API offers a caller; row-level security
in Supabase stays the authoritative enforcement.
"""
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

USER = "user"
GROUP_ADMIN = "group_admin"
UNIVERSAL_ADMIN = "universal_admin"

# Role hierarchy: universal_admin > group_admin > user
ROLE_HIERARCHY: Dict[str, int] = {
    USER: 1,
    GROUP_ADMIN: 2,
    UNIVERSAL_ADMIN: 3,
}

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

# approved is terminal for approval actions
ALLOWED_TRANSITIONS: Dict[str, set] = {
    PENDING: {APPROVED, REJECTED},
    REJECTED: {PENDING},
    APPROVED: set(),
}


def role_rank(role: Optional[str]) -> int:
    return ROLE_HIERARCHY.get(role or "", 0)


def has_role(profile: Optional[Dict[str, Any]], required_role: str) -> bool:
    """True if the profile's role ranks at or above required_role."""
    if not profile:
        return False
    return role_rank(profile.get("user_role")) >= role_rank(required_role)


def is_universal_admin(profile: Optional[Dict[str, Any]]) -> bool:
    return bool(profile) and profile.get("user_role") == UNIVERSAL_ADMIN


def has_global_group_admin_role(profile: Optional[Dict[str, Any]]) -> bool:
    """Role-level check used to show the admin area; not scoped to a group."""
    return bool(profile) and (profile.get("user_role") == GROUP_ADMIN or is_universal_admin(profile))


def is_group_admin(supabase: Client, profile: Optional[Dict[str, Any]], group_id: str) -> bool:
    """Universal admins administer every group; everyone else needs is_admin on their membership."""
    if not profile:
        return False
    if is_universal_admin(profile):
        return True
    try:
        result = supabase.table("group_members")\
            .select("is_admin")\
            .eq("group_id", group_id)\
            .eq("user_id", profile["id"])\
            .maybe_single()\
            .execute()
        membership = result.data if result else None
        return bool(membership) and membership.get("is_admin") is True
    except Exception as e:
        logger.error(f"Error checking group admin: {e}")
        return False


def is_group_member(supabase: Client, profile: Optional[Dict[str, Any]], group_id: str) -> bool:
    """Any membership row counts, pending included."""
    if not profile:
        return False
    try:
        result = supabase.table("group_members")\
            .select("id")\
            .eq("group_id", group_id)\
            .eq("user_id", profile["id"])\
            .maybe_single()\
            .execute()
        return bool(result and result.data)
    except Exception as e:
        logger.error(f"Error checking group membership: {e}")
        return False


def can_approve_post(supabase: Client, profile: Optional[Dict[str, Any]], post: Dict[str, Any]) -> bool:
    if not profile:
        return False
    if post.get("post_type") == "public":
        return is_universal_admin(profile)
    if post.get("post_type") == "group" and post.get("group_id"):
        return is_group_admin(supabase, profile, post["group_id"])
    return False


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot move a post from '{current}' to '{target}'"
        )
