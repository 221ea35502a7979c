from supabase import Client
from app.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, ProfileWithMembershipsResponse, MembershipSummary
)
from app.core.fanout import map_concurrently
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, supabase: Client, admin_client: Optional[Client] = None):
        self.supabase = supabase
        # service_role client; RLS normally forbids users changing user_role
        self.admin_client = admin_client or supabase

    def get_profile(self, user_id: str) -> ProfileResponse:
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return ProfileResponse(**result.data)

    def get_profile_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("username", username.strip().lower())\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def update_profile(self, user_id: str, data: ProfileUpdate) -> ProfileResponse:
        """Update the caller's own profile; username must stay unique."""
        update_data: Dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if data.full_name is not None:
            update_data["full_name"] = data.full_name.strip()
        if data.username is not None:
            existing = self.get_profile_by_username(data.username)
            if existing and existing["id"] != user_id:
                raise HTTPException(status_code=409, detail="Username is already taken")
            update_data["username"] = data.username
        if data.avatar_url is not None:
            update_data["avatar_url"] = data.avatar_url
        if data.bio is not None:
            update_data["bio"] = data.bio

        result = self.supabase.table("profiles")\
            .update(update_data)\
            .eq("id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return ProfileResponse(**result.data[0])

    def search_profiles(self, query: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[ProfileResponse]:
        request = self.supabase.table("profiles").select("*")
        if query:
            request = request.ilike("username", f"%{query.strip().lower()}%")
        result = request.order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [ProfileResponse(**profile) for profile in result.data]

    def _approved_memberships(self, user_id: str) -> List[MembershipSummary]:
        try:
            result = self.supabase.table("group_members")\
                .select("group_id, is_admin, groups(id, name)")\
                .eq("user_id", user_id)\
                .eq("status", "approved")\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching memberships for user {user_id}: {e}")
            return []
        memberships = []
        for item in result.data or []:
            group = item.get("groups") or {}
            if isinstance(group, list):
                group = group[0] if group else {}
            memberships.append(MembershipSummary(
                group_id=item["group_id"],
                group_name=group.get("name"),
                is_admin=bool(item.get("is_admin")),
            ))
        return memberships

    def list_profiles_with_memberships(self) -> List[ProfileWithMembershipsResponse]:
        """Admin user directory: every profile, newest first, with its approved memberships."""
        result = self.supabase.table("profiles")\
            .select("*")\
            .order("created_at", desc=True)\
            .execute()
        profiles = result.data or []
        memberships = map_concurrently(lambda p: self._approved_memberships(p["id"]), profiles)
        return [
            ProfileWithMembershipsResponse(**profile, memberships=member_list)
            for profile, member_list in zip(profiles, memberships)
        ]

    def set_user_role(self, user_id: str, user_role: str) -> ProfileResponse:
        result = self.admin_client.table("profiles")\
            .update({"user_role": user_role, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        logger.info(f"Set user_role={user_role} for {user_id}")
        return ProfileResponse(**result.data[0])
