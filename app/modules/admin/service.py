from supabase import Client
from app.modules.admin.schemas import DashboardStats
from app.core import roles
from app.core.fanout import gather
from typing import Optional


class AdminService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _count(self, table: str, approval_status: Optional[str] = None) -> int:
        query = self.supabase.table(table).select("id", count="exact", head=True)
        if approval_status:
            query = query.eq("approval_status", approval_status)
        return query.execute().count or 0

    def get_dashboard_stats(self) -> DashboardStats:
        """Headline counts for the admin dashboard, fetched concurrently"""
        users, posts, pending, approved = gather(
            lambda: self._count("profiles"),
            lambda: self._count("posts"),
            lambda: self._count("posts", roles.PENDING),
            lambda: self._count("posts", roles.APPROVED),
        )
        return DashboardStats(
            total_users=users,
            total_posts=posts,
            pending_posts=pending,
            approved_posts=approved,
        )
