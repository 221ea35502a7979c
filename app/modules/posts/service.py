from supabase import Client
from app.modules.posts.schemas import PostCreate, PostUpdate, PostResponse, UserPostCounts
from app.modules.posts.stats import attach_post_stats, fetch_post_stats
from app.modules.posts.storage import AttachmentStorage
from app.core import roles
from app.core.fanout import gather
from app.core.realtime import ChangeFeed, ChangeType, get_change_feed
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

AUTHOR_EMBED = "*, author:profiles!posts_author_id_fkey(*)"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches_search(post: Dict[str, Any], search: str) -> bool:
    needle = search.strip().lower()
    haystack = [post.get("title") or "", post.get("content") or ""] + list(post.get("tags") or [])
    return any(needle in text.lower() for text in haystack)


class PostService:
    def __init__(self, supabase: Client, feed: Optional[ChangeFeed] = None, storage: Optional[AttachmentStorage] = None):
        self.supabase = supabase
        self.feed = feed or get_change_feed()
        self.storage = storage or AttachmentStorage(supabase)

    def _get_post_row(self, post_id: str) -> Dict[str, Any]:
        result = self.supabase.table("posts")\
            .select(AUTHOR_EMBED)\
            .eq("id", post_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Note not found")
        return result.data

    def _is_approved_member(self, group_id: str, user_id: str) -> bool:
        result = self.supabase.table("group_members")\
            .select("status")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .maybe_single()\
            .execute()
        membership = result.data if result else None
        return bool(membership) and membership.get("status") == "approved"

    def _check_folder_owner(self, folder_id: str, user_id: str) -> None:
        result = self.supabase.table("folders")\
            .select("user_id")\
            .eq("id", folder_id)\
            .maybe_single()\
            .execute()
        folder = result.data if result else None
        if not folder or folder.get("user_id") != user_id:
            raise HTTPException(status_code=400, detail="Folder not found")

    def create_post(self, profile: Dict[str, Any], data: PostCreate) -> PostResponse:
        """Every new note starts pending; an admin must approve it before it is visible"""
        author_id = profile["id"]
        if data.post_type == "group" and not roles.is_universal_admin(profile):
            if not self._is_approved_member(data.group_id, author_id):
                raise HTTPException(status_code=403, detail="You must be a member of this group to post in it")
        if data.folder_id:
            self._check_folder_owner(data.folder_id, author_id)
        for attachment in data.attachments or []:
            if not self.storage.is_own_attachment_url(author_id, attachment.url):
                raise HTTPException(status_code=400, detail=f"Attachment '{attachment.name}' was not uploaded by you")

        result = self.supabase.table("posts").insert({
            "title": data.title,
            "content": data.content,
            "author_id": author_id,
            "post_type": data.post_type,
            "approval_status": roles.PENDING,
            "folder_id": data.folder_id,
            "group_id": data.group_id if data.post_type == "group" else None,
            "tags": data.tags,
            "attachments": [a.model_dump() for a in data.attachments] if data.attachments else None,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create note")
        post = result.data[0]
        self.feed.emit("posts", ChangeType.INSERT, new=post)
        logger.info(f"Note {post['id']} submitted for approval ({data.post_type})")
        return PostResponse(**post)

    def can_view(self, post: Dict[str, Any], profile: Optional[Dict[str, Any]]) -> bool:
        if profile and post["author_id"] == profile["id"]:
            return True
        if post["approval_status"] == roles.APPROVED:
            if post["post_type"] == "public":
                return True
            if profile and post.get("group_id"):
                return roles.is_universal_admin(profile) or self._is_approved_member(post["group_id"], profile["id"])
            return False
        # Pending and rejected notes are visible to whoever can review them
        return roles.can_approve_post(self.supabase, profile, post)

    def get_post(self, post_id: str, profile: Optional[Dict[str, Any]]) -> PostResponse:
        post = self._get_post_row(post_id)
        if not self.can_view(post, profile):
            raise HTTPException(status_code=404, detail="Note not found")
        viewer_id = profile["id"] if profile else None
        return PostResponse(**post, **fetch_post_stats(self.supabase, post_id, viewer_id))

    def update_post(self, post_id: str, author_id: str, data: PostUpdate) -> PostResponse:
        """Author edit. Any edit sends the note back to review and clears the rejection reason."""
        post = self._get_post_row(post_id)
        if post["author_id"] != author_id:
            raise HTTPException(status_code=403, detail="You can only edit your own notes")
        current = post["approval_status"]
        if current != roles.PENDING:
            roles.ensure_transition(current, roles.PENDING)

        update_data: Dict[str, Any] = {
            "title": data.title,
            "content": data.content,
            "approval_status": roles.PENDING,
            "rejection_reason": None,
            "updated_at": _now(),
        }
        if data.tags is not None:
            update_data["tags"] = data.tags
        result = self.supabase.table("posts")\
            .update(update_data)\
            .eq("id", post_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Note not found")
        self.feed.emit("posts", ChangeType.UPDATE, new=result.data[0], old=post)
        return PostResponse(**result.data[0])

    def delete_post(self, post_id: str, profile: Dict[str, Any]) -> bool:
        post = self._get_post_row(post_id)
        if post["author_id"] != profile["id"] and not roles.can_approve_post(self.supabase, profile, post):
            raise HTTPException(status_code=403, detail="You can only delete your own notes")
        result = self.supabase.table("posts").delete().eq("id", post_id).execute()
        for attachment in post.get("attachments") or []:
            key = self.storage.key_from_url(attachment.get("url"))
            # Only the author's own uploads are removed with the note
            if self.storage.owns_key(post["author_id"], key):
                self.storage.delete(key)
        self.feed.emit("posts", ChangeType.DELETE, old=post)
        return bool(result.data)

    def get_feed(self, viewer_id: Optional[str], search: Optional[str] = None) -> List[PostResponse]:
        """Approved public notes, newest first"""
        result = self.supabase.table("posts")\
            .select(AUTHOR_EMBED)\
            .eq("post_type", "public")\
            .eq("approval_status", roles.APPROVED)\
            .order("created_at", desc=True)\
            .execute()
        posts = result.data or []
        if search and search.strip():
            posts = [p for p in posts if _matches_search(p, search)]
        return [PostResponse(**p) for p in attach_post_stats(self.supabase, posts, viewer_id)]

    def list_user_posts(self, user_id: str, status: Optional[str] = None, viewer_id: Optional[str] = None) -> List[PostResponse]:
        query = self.supabase.table("posts")\
            .select("*, group:groups(id, name)")\
            .eq("author_id", user_id)
        if status:
            query = query.eq("approval_status", status)
        result = query.order("created_at", desc=True).execute()
        return [PostResponse(**p) for p in attach_post_stats(self.supabase, result.data or [], viewer_id or user_id)]

    def _count_posts(self, user_id: str, status: Optional[str] = None) -> int:
        query = self.supabase.table("posts")\
            .select("id", count="exact", head=True)\
            .eq("author_id", user_id)
        if status:
            query = query.eq("approval_status", status)
        return query.execute().count or 0

    def _count_likes_received(self, user_id: str) -> int:
        posts = self.supabase.table("posts").select("id").eq("author_id", user_id).execute()
        post_ids = [p["id"] for p in posts.data or []]
        if not post_ids:
            return 0
        result = self.supabase.table("post_likes")\
            .select("id", count="exact", head=True)\
            .in_("post_id", post_ids)\
            .execute()
        return result.count or 0

    def get_user_post_counts(self, user_id: str) -> UserPostCounts:
        total, approved, pending, likes = gather(
            lambda: self._count_posts(user_id),
            lambda: self._count_posts(user_id, roles.APPROVED),
            lambda: self._count_posts(user_id, roles.PENDING),
            lambda: self._count_likes_received(user_id),
        )
        return UserPostCounts(total=total, approved=approved, pending=pending, likes_received=likes)

    def _administered_group_ids(self, user_id: str) -> List[str]:
        result = self.supabase.table("group_members")\
            .select("group_id")\
            .eq("user_id", user_id)\
            .eq("is_admin", True)\
            .eq("status", "approved")\
            .execute()
        return [m["group_id"] for m in result.data or []]

    def list_pending_posts(self, profile: Dict[str, Any]) -> List[PostResponse]:
        """Review queue: everything for universal admins, group notes of administered groups otherwise"""
        query = self.supabase.table("posts")\
            .select("*, author:profiles!posts_author_id_fkey(*), group:groups(id, name)")\
            .eq("approval_status", roles.PENDING)
        if not roles.is_universal_admin(profile):
            group_ids = self._administered_group_ids(profile["id"])
            if not group_ids:
                return []
            query = query.eq("post_type", "group").in_("group_id", group_ids)
        result = query.order("created_at", desc=True).execute()
        return [PostResponse(**p) for p in result.data or []]

    def _review(self, post_id: str, profile: Dict[str, Any], target: str, reason: Optional[str] = None) -> PostResponse:
        post = self._get_post_row(post_id)
        if not roles.can_approve_post(self.supabase, profile, post):
            raise HTTPException(status_code=403, detail="You are not allowed to review this note")
        roles.ensure_transition(post["approval_status"], target)

        update_data: Dict[str, Any] = {
            "approval_status": target,
            "approved_by": profile["id"],
            "approved_at": _now(),
            "rejection_reason": reason,
        }
        result = self.supabase.table("posts")\
            .update(update_data)\
            .eq("id", post_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Note not found")
        self.feed.emit("posts", ChangeType.UPDATE, new=result.data[0], old=post)
        logger.info(f"Note {post_id} {target} by {profile['id']}")
        return PostResponse(**result.data[0])

    def approve_post(self, post_id: str, profile: Dict[str, Any]) -> PostResponse:
        return self._review(post_id, profile, roles.APPROVED)

    def reject_post(self, post_id: str, profile: Dict[str, Any], reason: str) -> PostResponse:
        if not reason or not reason.strip():
            raise HTTPException(status_code=422, detail="Please provide a rejection reason")
        return self._review(post_id, profile, roles.REJECTED, reason.strip())
