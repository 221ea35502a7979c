from supabase import Client
from app.modules.engagement.schemas import LikeToggleResponse, CommentResponse
from app.core.realtime import ChangeFeed, ChangeType, get_change_feed
from typing import List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class EngagementService:
    def __init__(self, supabase: Client, feed: Optional[ChangeFeed] = None):
        self.supabase = supabase
        self.feed = feed or get_change_feed()

    def _like_count(self, post_id: str) -> int:
        result = self.supabase.table("post_likes")\
            .select("*", count="exact", head=True)\
            .eq("post_id", post_id)\
            .execute()
        return result.count or 0

    def toggle_like(self, post_id: str, user_id: str) -> LikeToggleResponse:
        """Unlike if the user already liked the note, like it otherwise"""
        existing = self.supabase.table("post_likes")\
            .select("id")\
            .eq("post_id", post_id)\
            .eq("user_id", user_id)\
            .maybe_single()\
            .execute()

        if existing and existing.data:
            result = self.supabase.table("post_likes")\
                .delete()\
                .eq("post_id", post_id)\
                .eq("user_id", user_id)\
                .execute()
            for row in result.data or []:
                self.feed.emit("post_likes", ChangeType.DELETE, old=row)
            liked = False
        else:
            result = self.supabase.table("post_likes")\
                .insert({"post_id": post_id, "user_id": user_id})\
                .execute()
            for row in result.data or []:
                self.feed.emit("post_likes", ChangeType.INSERT, new=row)
            liked = True

        return LikeToggleResponse(post_id=post_id, liked=liked, like_count=self._like_count(post_id))

    def list_comments(self, post_id: str) -> List[CommentResponse]:
        result = self.supabase.table("comments")\
            .select("*, author:profiles(*)")\
            .eq("post_id", post_id)\
            .order("created_at")\
            .execute()
        return [CommentResponse(**comment) for comment in result.data or []]

    def add_comment(self, post_id: str, author_id: str, content: str) -> CommentResponse:
        result = self.supabase.table("comments").insert({
            "post_id": post_id,
            "author_id": author_id,
            "content": content,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to post comment")
        self.feed.emit("comments", ChangeType.INSERT, new=result.data[0])
        return CommentResponse(**result.data[0])

    def delete_comment(self, comment_id: str, author_id: str) -> bool:
        result = self.supabase.table("comments")\
            .select("*")\
            .eq("id", comment_id)\
            .maybe_single()\
            .execute()
        comment = result.data if result else None
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")
        if comment["author_id"] != author_id:
            raise HTTPException(status_code=403, detail="You can only delete your own comments")
        self.supabase.table("comments").delete().eq("id", comment_id).execute()
        self.feed.emit("comments", ChangeType.DELETE, old=comment)
        return True
