from fastapi import APIRouter, Depends
from app.modules.engagement.schemas import LikeToggleResponse, CommentCreate, CommentResponse
from app.modules.engagement.service import EngagementService
from app.modules.posts.service import PostService
from app.core.dependencies import get_session, get_user_supabase
from app.core.session import SessionContext
from supabase import Client
from typing import List

router = APIRouter(tags=["engagement"])


def get_engagement_service(supabase: Client = Depends(get_user_supabase)) -> EngagementService:
    return EngagementService(supabase)


def get_post_service(supabase: Client = Depends(get_user_supabase)) -> PostService:
    return PostService(supabase)


@router.post("/posts/{post_id}/like", response_model=LikeToggleResponse)
def toggle_like(
    post_id: str,
    session: SessionContext = Depends(get_session),
    service: EngagementService = Depends(get_engagement_service),
    posts: PostService = Depends(get_post_service)
):
    posts.get_post(post_id, session.principal)
    return service.toggle_like(post_id, session.user_id)


@router.get("/posts/{post_id}/comments", response_model=List[CommentResponse])
def list_comments(
    post_id: str,
    session: SessionContext = Depends(get_session),
    service: EngagementService = Depends(get_engagement_service),
    posts: PostService = Depends(get_post_service)
):
    posts.get_post(post_id, session.principal)
    return service.list_comments(post_id)


@router.post("/posts/{post_id}/comments", response_model=CommentResponse, status_code=201)
def add_comment(
    post_id: str,
    body: CommentCreate,
    session: SessionContext = Depends(get_session),
    service: EngagementService = Depends(get_engagement_service),
    posts: PostService = Depends(get_post_service)
):
    posts.get_post(post_id, session.principal)
    return service.add_comment(post_id, session.user_id, body.content)


@router.delete("/comments/{comment_id}", status_code=204)
def delete_comment(
    comment_id: str,
    session: SessionContext = Depends(get_session),
    service: EngagementService = Depends(get_engagement_service)
):
    service.delete_comment(comment_id, session.user_id)
    return None
