from supabase import Client
from app.core import realtime, roles
from app.core.dependencies import is_approved_member
from app.core.realtime import ChangeEvent
from app.core.session import SessionContext
from app.modules.posts.service import PostService
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class RealtimeService:
    """Per-watcher visibility of change events.

    A channel filter only narrows what is delivered; every event is still
    checked against the same rules the REST reads apply before it reaches
    the socket.
    """

    def __init__(self, supabase: Client, session: SessionContext):
        self.supabase = supabase
        self.session = session
        self.posts = PostService(supabase)

    def _post(self, post_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not post_id:
            return None
        result = self.supabase.table("posts")\
            .select("*")\
            .eq("id", post_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def _can_see_post(self, post: Optional[Dict[str, Any]]) -> bool:
        return bool(post) and self.posts.can_view(post, self.session.principal)

    def _can_see_membership(self, membership: Dict[str, Any]) -> bool:
        if membership.get("user_id") == self.session.user_id:
            return True
        group_id = membership.get("group_id")
        if not group_id:
            return False
        if roles.is_group_admin(self.supabase, self.session.principal, group_id):
            return True
        # Join requests stay between the requester and the group's admins
        return membership.get("status") == "approved" and is_approved_member(group_id, self.session, self.supabase)

    def can_receive(self, event: ChangeEvent) -> bool:
        record = event.record()
        try:
            if event.table == "posts":
                return self._can_see_post(record)
            if event.table in ("comments", "post_likes"):
                return self._can_see_post(self._post(record.get("post_id")))
            if event.table == "group_members":
                return self._can_see_membership(record)
            if event.table == "folders":
                return record.get("user_id") == self.session.user_id
            if event.table == realtime.AUTH_CHANNEL:
                return record.get("user_id") == self.session.user_id
            if event.table == "groups":
                return True
        except Exception as e:
            logger.warning(f"Visibility check failed for {event.table} event, not delivered: {e}")
            return False
        return False
