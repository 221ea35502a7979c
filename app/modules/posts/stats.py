"""Per-post like/comment counts for the current viewer, fetched concurrently and best effort."""
from supabase import Client
from app.core.fanout import gather, map_concurrently
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

EMPTY_STATS = {"like_count": 0, "comment_count": 0, "user_has_liked": False}


def _count(supabase: Client, table: str, post_id: str) -> int:
    result = supabase.table(table)\
        .select("*", count="exact", head=True)\
        .eq("post_id", post_id)\
        .execute()
    return result.count or 0


def _viewer_liked(supabase: Client, post_id: str, viewer_id: Optional[str]) -> bool:
    if not viewer_id:
        return False
    result = supabase.table("post_likes")\
        .select("id")\
        .eq("post_id", post_id)\
        .eq("user_id", viewer_id)\
        .maybe_single()\
        .execute()
    return bool(result and result.data)


def fetch_post_stats(supabase: Client, post_id: str, viewer_id: Optional[str]) -> Dict[str, Any]:
    """Three independent queries; any failure degrades this post to zero counts."""
    try:
        like_count, comment_count, liked = gather(
            lambda: _count(supabase, "post_likes", post_id),
            lambda: _count(supabase, "comments", post_id),
            lambda: _viewer_liked(supabase, post_id, viewer_id),
            max_workers=3,
        )
        return {"like_count": like_count, "comment_count": comment_count, "user_has_liked": liked}
    except Exception as e:
        logger.warning(f"Failed to load stats for post {post_id}: {e}")
        return dict(EMPTY_STATS)


def attach_post_stats(supabase: Client, posts: List[Dict[str, Any]], viewer_id: Optional[str]) -> List[Dict[str, Any]]:
    """Return copies of posts annotated with like_count, comment_count and user_has_liked, order preserved."""
    stats = map_concurrently(lambda post: fetch_post_stats(supabase, post["id"], viewer_id), posts)
    return [{**post, **post_stats} for post, post_stats in zip(posts, stats)]
