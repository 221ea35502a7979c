from fastapi import APIRouter, Depends
from app.database.supabase_client import get_service_supabase
from app.modules.admin.schemas import DashboardStats
from app.modules.admin.service import AdminService
from app.modules.profiles.schemas import ProfileResponse, ProfileWithMembershipsResponse, RoleUpdate
from app.modules.profiles.service import ProfileService
from app.core.dependencies import get_user_supabase, require_role
from app.core.session import SessionContext
from app.core import roles
from supabase import Client
from typing import List

router = APIRouter(prefix="/admin", tags=["admin"])


def get_admin_service(supabase: Client = Depends(get_user_supabase)) -> AdminService:
    return AdminService(supabase)


def get_profile_service(
    supabase: Client = Depends(get_user_supabase),
    admin_client: Client = Depends(get_service_supabase)
) -> ProfileService:
    return ProfileService(supabase, admin_client)


@router.get("/dashboard", response_model=DashboardStats)
def dashboard(
    session: SessionContext = Depends(require_role(roles.GROUP_ADMIN)),
    service: AdminService = Depends(get_admin_service)
):
    return service.get_dashboard_stats()


@router.get("/users", response_model=List[ProfileWithMembershipsResponse])
def list_users(
    session: SessionContext = Depends(require_role(roles.UNIVERSAL_ADMIN)),
    service: ProfileService = Depends(get_profile_service)
):
    """Every profile with the groups it belongs to"""
    return service.list_profiles_with_memberships()


@router.put("/users/{user_id}/role", response_model=ProfileResponse)
def update_user_role(
    user_id: str,
    body: RoleUpdate,
    session: SessionContext = Depends(require_role(roles.UNIVERSAL_ADMIN)),
    service: ProfileService = Depends(get_profile_service)
):
    return service.set_user_role(user_id, body.user_role)
