from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_users: int
    total_posts: int
    pending_posts: int
    approved_posts: int
