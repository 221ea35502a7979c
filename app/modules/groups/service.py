from supabase import Client
from app.modules.groups.schemas import (
    GroupUpdate, GroupResponse, GroupMemberResponse, GroupDetailsResponse, AddMembersResult
)
from app.modules.posts.stats import attach_post_stats
from app.core.fanout import gather
from app.core.realtime import ChangeFeed, ChangeType, get_change_feed
from app.core.saga import Saga
from app.core.roles import UNIVERSAL_ADMIN
from app.core.validators import normalize_usernames
from app.config import settings
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class GroupService:
    """
    Group membership and group feed workflow.

    Multi-step writes are independent Supabase calls; member_count is never
    incremented in place, it is recomputed from approved group_members rows
    after every membership change.
    """

    def __init__(self, supabase: Client, feed: Optional[ChangeFeed] = None, compensate: Optional[bool] = None):
        self.supabase = supabase
        self.feed = feed or get_change_feed()
        self.compensate = settings.saga_compensate if compensate is None else compensate

    def fetch_groups(self) -> List[GroupResponse]:
        result = self.supabase.table("groups")\
            .select("*")\
            .order("name")\
            .execute()
        return [GroupResponse(**group) for group in result.data or []]

    def get_group(self, group_id: str) -> GroupResponse:
        result = self.supabase.table("groups")\
            .select("*")\
            .eq("id", group_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Group not found")
        return GroupResponse(**result.data)

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        update_data: Dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if group_data.name:
            update_data["name"] = group_data.name.strip()
        if group_data.description is not None:
            update_data["description"] = group_data.description
        if group_data.avatar_url is not None:
            update_data["avatar_url"] = group_data.avatar_url

        result = self.supabase.table("groups")\
            .update(update_data)\
            .eq("id", group_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Group not found")
        self.feed.emit("groups", ChangeType.UPDATE, new=result.data[0])
        return GroupResponse(**result.data[0])

    def fetch_user_memberships(self, user_id: str) -> Dict[str, str]:
        """Map group_id -> 'member' | 'pending' for every group the user has a row in"""
        result = self.supabase.table("group_members")\
            .select("group_id, status, is_admin")\
            .eq("user_id", user_id)\
            .execute()
        return {
            m["group_id"]: "member" if m.get("status") == "approved" else "pending"
            for m in result.data or []
        }

    def _find_universal_admin(self) -> Optional[str]:
        result = self.supabase.table("profiles")\
            .select("id")\
            .eq("user_role", UNIVERSAL_ADMIN)\
            .limit(1)\
            .execute()
        return result.data[0]["id"] if result.data else None

    def create_group(self, name: str, description: Optional[str], creator_id: str) -> GroupResponse:
        """
        Create a group with the creator (and the universal admin, if one exists)
        as approved admins.

        Errors from any step reach the caller unchanged. With compensation on,
        steps that already completed are undone first.
        """
        def insert_group(results):
            result = self.supabase.table("groups").insert({
                "name": name,
                "description": description,
                "created_by": creator_id,
                "member_count": 1,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")
            return result.data[0]

        def delete_group_row(results):
            self.supabase.table("groups").delete().eq("id", results["group"]["id"]).execute()

        def build_memberships(results):
            group_id = results["group"]["id"]
            rows = [{"group_id": group_id, "user_id": creator_id, "is_admin": True, "status": "approved"}]
            admin_id = results["universal_admin"]
            if admin_id and admin_id != creator_id:
                rows.append({"group_id": group_id, "user_id": admin_id, "is_admin": True, "status": "approved"})
            result = self.supabase.table("group_members").insert(rows).execute()
            return result.data or rows

        def delete_memberships(results):
            self.supabase.table("group_members").delete().eq("group_id", results["group"]["id"]).execute()

        def set_member_count(results):
            count = len(results["memberships"])
            result = self.supabase.table("groups")\
                .update({"member_count": count})\
                .eq("id", results["group"]["id"])\
                .execute()
            return result.data[0] if result.data else {**results["group"], "member_count": count}

        saga = Saga("create_group", compensate=self.compensate)\
            .step("group", insert_group, compensation=delete_group_row)\
            .step("universal_admin", lambda results: self._find_universal_admin())\
            .step("memberships", build_memberships, compensation=delete_memberships)\
            .step("member_count", set_member_count)
        results = saga.run()

        group = results["member_count"]
        self.feed.emit("groups", ChangeType.INSERT, new=group)
        for membership in results["memberships"]:
            self.feed.emit("group_members", ChangeType.INSERT, new=membership)
        logger.info(f"Created group {group['id']} with {group['member_count']} member(s)")
        return GroupResponse(**group)

    def join_group(self, group_id: str, user_id: str) -> GroupMemberResponse:
        """Request to join; an admin approves or rejects later. No duplicate pre-check."""
        result = self.supabase.table("group_members").insert({
            "group_id": group_id,
            "user_id": user_id,
            "is_admin": False,
            "status": "pending",
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to request membership")
        self.feed.emit("group_members", ChangeType.INSERT, new=result.data[0])
        return GroupMemberResponse(**result.data[0])

    def _count_approved(self, group_id: str) -> int:
        result = self.supabase.table("group_members")\
            .select("id", count="exact", head=True)\
            .eq("group_id", group_id)\
            .eq("status", "approved")\
            .execute()
        return result.count or 0

    def _is_universal_admin(self, user_id: str) -> bool:
        result = self.supabase.table("profiles")\
            .select("user_role")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        profile = result.data if result else None
        return bool(profile) and profile.get("user_role") == UNIVERSAL_ADMIN

    def _membership(self, group_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("group_members")\
            .select("*")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def _fetch_group_row(self, group_id: str) -> Dict[str, Any]:
        result = self.supabase.table("groups")\
            .select("*")\
            .eq("id", group_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Group not found")
        return result.data

    def get_group_details(self, group_id: str, user_id: Optional[str]) -> GroupDetailsResponse:
        """Group, the caller's standing in it, and the posts the caller may see"""
        if user_id:
            group, approved_count, universal_admin, membership = gather(
                lambda: self._fetch_group_row(group_id),
                lambda: self._count_approved(group_id),
                lambda: self._is_universal_admin(user_id),
                lambda: self._membership(group_id, user_id),
                max_workers=4,
            )
        else:
            group, approved_count = gather(
                lambda: self._fetch_group_row(group_id),
                lambda: self._count_approved(group_id),
                max_workers=2,
            )
            universal_admin, membership = False, None

        group = {**group, "member_count": approved_count}
        approved = bool(membership) and membership.get("status") == "approved"
        is_member = approved or universal_admin
        if is_member:
            membership_status = "member"
        elif membership:
            membership_status = "pending"
        else:
            membership_status = "none"
        is_admin = bool(membership and membership.get("is_admin")) or universal_admin

        posts: List[Dict[str, Any]] = []
        if is_member:
            query = self.supabase.table("posts")\
                .select("*, author:profiles!posts_author_id_fkey(*)")\
                .eq("group_id", group_id)
            if is_admin:
                query = query.in_("approval_status", ["pending", "approved"])
            else:
                query = query.eq("approval_status", "approved")
            result = query.order("created_at", desc=True).execute()
            posts = attach_post_stats(self.supabase, result.data or [], user_id)

        return GroupDetailsResponse(
            group=GroupResponse(**group),
            is_member=is_member,
            is_admin=is_admin,
            membership_status=membership_status,
            posts=posts,
        )

    def fetch_pending_members(self, group_id: str) -> List[GroupMemberResponse]:
        """Join requests awaiting approval, with the requester's profile"""
        try:
            result = self.supabase.table("group_members")\
                .select("*, user:profiles(*)")\
                .eq("group_id", group_id)\
                .eq("status", "pending")\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching pending members: {e}")
            return []
        return [GroupMemberResponse(**member) for member in result.data or []]

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        result = self.supabase.table("group_members")\
            .select("*, user:profiles(*)")\
            .eq("group_id", group_id)\
            .eq("status", "approved")\
            .execute()
        return [GroupMemberResponse(**member) for member in result.data or []]

    def recompute_member_count(self, group_id: str) -> int:
        """Count approved memberships and store the number on the group row. Safe to repeat."""
        count = self._count_approved(group_id)
        result = self.supabase.table("groups")\
            .update({"member_count": count})\
            .eq("id", group_id)\
            .execute()
        if result.data:
            self.feed.emit("groups", ChangeType.UPDATE, new=result.data[0])
        return count

    def update_membership_status(self, membership_id: str, status: str) -> Optional[GroupMemberResponse]:
        """Approve keeps the row and recounts; reject deletes it. Returns the approved membership."""
        if status == "rejected":
            result = self.supabase.table("group_members")\
                .delete()\
                .eq("id", membership_id)\
                .execute()
            for row in result.data or []:
                self.feed.emit("group_members", ChangeType.DELETE, old=row)
                self.recompute_member_count(row["group_id"])
            return None

        result = self.supabase.table("group_members")\
            .update({"status": "approved"})\
            .eq("id", membership_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Membership not found")
        membership = result.data[0]
        self.feed.emit("group_members", ChangeType.UPDATE, new=membership)
        self.recompute_member_count(membership["group_id"])
        return GroupMemberResponse(**membership)

    def get_membership(self, membership_id: str) -> Dict[str, Any]:
        result = self.supabase.table("group_members")\
            .select("*")\
            .eq("id", membership_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Membership not found")
        return result.data

    def add_members_to_group(self, group_id: str, usernames: List[str]) -> AddMembersResult:
        """
        Admin-driven bulk add. Each username lands in exactly one of
        added / already_members / not_found. Added members skip the pending
        state. Not transactional: inserts that succeeded stay if a later call fails.
        """
        wanted = normalize_usernames(usernames)
        if not wanted:
            return AddMembersResult()

        profiles_result = self.supabase.table("profiles")\
            .select("id, username")\
            .in_("username", wanted)\
            .execute()
        ids_by_username = {p["username"]: p["id"] for p in profiles_result.data or []}
        not_found = [u for u in wanted if u not in ids_by_username]
        found = [u for u in wanted if u in ids_by_username]
        if not found:
            return AddMembersResult(not_found=not_found)

        existing_result = self.supabase.table("group_members")\
            .select("user_id")\
            .eq("group_id", group_id)\
            .in_("user_id", [ids_by_username[u] for u in found])\
            .execute()
        existing_ids = {m["user_id"] for m in existing_result.data or []}
        already_members = [u for u in found if ids_by_username[u] in existing_ids]
        to_add = [u for u in found if ids_by_username[u] not in existing_ids]

        if to_add:
            rows = [
                {"group_id": group_id, "user_id": ids_by_username[u], "is_admin": False, "status": "approved"}
                for u in to_add
            ]
            insert_result = self.supabase.table("group_members").insert(rows).execute()
            for membership in insert_result.data or rows:
                self.feed.emit("group_members", ChangeType.INSERT, new=membership)
            self.recompute_member_count(group_id)

        logger.info(f"Group {group_id}: added {len(to_add)}, already members {len(already_members)}, not found {len(not_found)}")
        return AddMembersResult(added=to_add, already_members=already_members, not_found=not_found)

    def toggle_group_admin(self, group_id: str, user_id: str, make_admin: bool) -> GroupMemberResponse:
        result = self.supabase.table("group_members")\
            .update({"is_admin": make_admin})\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Membership not found")
        self.feed.emit("group_members", ChangeType.UPDATE, new=result.data[0])
        return GroupMemberResponse(**result.data[0])

    def remove_user_from_group(self, group_id: str, user_id: str) -> bool:
        result = self.supabase.table("group_members")\
            .delete()\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .execute()
        for row in result.data or []:
            self.feed.emit("group_members", ChangeType.DELETE, old=row)
        self.recompute_member_count(group_id)
        return bool(result.data)

    def delete_group(self, group_id: str) -> bool:
        """Members, then posts, then the group row. Failures in the first two are logged and skipped."""
        def delete_members(results):
            self.supabase.table("group_members").delete().eq("group_id", group_id).execute()

        def delete_posts(results):
            self.supabase.table("posts").delete().eq("group_id", group_id).execute()

        def delete_group_row(results):
            return self.supabase.table("groups").delete().eq("id", group_id).execute()

        saga = Saga("delete_group", compensate=False)\
            .step("members", delete_members, best_effort=True)\
            .step("posts", delete_posts, best_effort=True)\
            .step("group", delete_group_row)
        results = saga.run()

        deleted = results["group"].data or []
        for row in deleted:
            self.feed.emit("groups", ChangeType.DELETE, old=row)
        return len(deleted) > 0
