from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.modules.profiles.schemas import ProfileUpdate, ProfileResponse
from app.modules.profiles.service import ProfileService
from app.core.dependencies import get_session, get_user_supabase
from app.core.session import SessionContext
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(
    supabase: Client = Depends(get_user_supabase),
    admin_client: Client = Depends(get_service_supabase)
) -> ProfileService:
    return ProfileService(supabase, admin_client)


@router.get("/me", response_model=ProfileResponse)
def get_my_profile(
    session: SessionContext = Depends(get_session),
    service: ProfileService = Depends(get_profile_service)
):
    return service.get_profile(session.user_id)


@router.put("/me", response_model=ProfileResponse)
def update_my_profile(
    data: ProfileUpdate,
    session: SessionContext = Depends(get_session),
    service: ProfileService = Depends(get_profile_service)
):
    """Edit the caller's profile (full name, username, bio, avatar)"""
    return service.update_profile(session.user_id, data)


@router.get("", response_model=List[ProfileResponse])
def search_profiles(
    q: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    session: SessionContext = Depends(get_session),
    service: ProfileService = Depends(get_profile_service)
):
    """Look up profiles by username fragment (used when adding group members)"""
    return service.search_profiles(q, limit=limit, offset=offset)


@router.get("/{user_id}", response_model=ProfileResponse)
def get_profile(
    user_id: str,
    session: SessionContext = Depends(get_session),
    service: ProfileService = Depends(get_profile_service)
):
    return service.get_profile(user_id)
