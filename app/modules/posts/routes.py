from fastapi import APIRouter, Depends, File, UploadFile
from app.modules.posts.schemas import (
    PostCreate, PostUpdate, PostRejection, PostResponse, Attachment, UserPostCounts, ApprovalStatus
)
from app.modules.posts.service import PostService
from app.modules.posts.storage import AttachmentStorage
from app.core.dependencies import get_session, get_user_supabase
from app.core.session import SessionContext
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/posts", tags=["posts"])


def get_post_service(supabase: Client = Depends(get_user_supabase)) -> PostService:
    return PostService(supabase)


def get_attachment_storage(supabase: Client = Depends(get_user_supabase)) -> AttachmentStorage:
    return AttachmentStorage(supabase)


@router.get("/feed", response_model=List[PostResponse])
def get_feed(
    q: Optional[str] = None,
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    """Approved public notes, newest first, optionally filtered by a search term"""
    return service.get_feed(session.user_id, q)


@router.post("", response_model=PostResponse, status_code=201)
def create_post(
    data: PostCreate,
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    """Submit a note for approval"""
    return service.create_post(session.principal, data)


@router.post("/attachments", response_model=List[Attachment], status_code=201)
def upload_attachments(
    files: List[UploadFile] = File(...),
    session: SessionContext = Depends(get_session),
    storage: AttachmentStorage = Depends(get_attachment_storage)
):
    """Upload files to storage; pass the returned entries as `attachments` when creating the note"""
    uploaded = []
    for upload in files:
        content = upload.file.read()
        uploaded.append(storage.upload(session.user_id, upload.filename, content, upload.content_type))
    return uploaded


@router.get("/mine", response_model=List[PostResponse])
def list_my_posts(
    status: Optional[ApprovalStatus] = None,
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    return service.list_user_posts(session.user_id, status)


@router.get("/mine/stats", response_model=UserPostCounts)
def my_post_counts(
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    return service.get_user_post_counts(session.user_id)


@router.get("/pending", response_model=List[PostResponse])
def list_pending_posts(
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    """Notes waiting for the caller's review"""
    return service.list_pending_posts(session.principal)


@router.get("/{post_id}", response_model=PostResponse)
def get_post(
    post_id: str,
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    return service.get_post(post_id, session.principal)


@router.put("/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    data: PostUpdate,
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    """Edit a pending or rejected note; it goes back to review"""
    return service.update_post(post_id, session.user_id, data)


@router.delete("/{post_id}", status_code=204)
def delete_post(
    post_id: str,
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    service.delete_post(post_id, session.principal)
    return None


@router.post("/{post_id}/approve", response_model=PostResponse)
def approve_post(
    post_id: str,
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    return service.approve_post(post_id, session.principal)


@router.post("/{post_id}/reject", response_model=PostResponse)
def reject_post(
    post_id: str,
    body: PostRejection,
    session: SessionContext = Depends(get_session),
    service: PostService = Depends(get_post_service)
):
    return service.reject_post(post_id, session.principal, body.reason)
