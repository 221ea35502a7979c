from fastapi import APIRouter, Depends
from app.modules.folders.schemas import FolderCreate, FolderResponse, FolderNode, AddPostsToFolder, AddPostsResult
from app.modules.folders.service import FolderService
from app.core.dependencies import get_session, get_user_supabase
from app.core.session import SessionContext
from supabase import Client
from typing import List

router = APIRouter(prefix="/folders", tags=["folders"])


def get_folder_service(supabase: Client = Depends(get_user_supabase)) -> FolderService:
    return FolderService(supabase)


@router.get("", response_model=List[FolderResponse])
def list_folders(
    session: SessionContext = Depends(get_session),
    service: FolderService = Depends(get_folder_service)
):
    return service.list_folders(session.user_id)


@router.get("/tree", response_model=List[FolderNode])
def folder_tree(
    session: SessionContext = Depends(get_session),
    service: FolderService = Depends(get_folder_service)
):
    return service.get_folder_tree(session.user_id)


@router.post("", response_model=FolderResponse, status_code=201)
def create_folder(
    body: FolderCreate,
    session: SessionContext = Depends(get_session),
    service: FolderService = Depends(get_folder_service)
):
    return service.create_folder(session.user_id, body.name, body.parent_folder_id)


@router.post("/{folder_id}/posts", response_model=AddPostsResult)
def add_posts(
    folder_id: str,
    body: AddPostsToFolder,
    session: SessionContext = Depends(get_session),
    service: FolderService = Depends(get_folder_service)
):
    return service.add_posts_to_folder(session.user_id, folder_id, body.post_ids)


@router.delete("/{folder_id}", status_code=204)
def delete_folder(
    folder_id: str,
    session: SessionContext = Depends(get_session),
    service: FolderService = Depends(get_folder_service)
):
    """Notes in the folder are kept; sub-folders move up one level"""
    service.delete_folder(session.user_id, folder_id)
    return None
