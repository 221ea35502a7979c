from fastapi import APIRouter, Depends
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupMemberResponse, GroupDetailsResponse,
    AddMembersRequest, AddMembersResult, MembershipStatusUpdate, GroupAdminToggle
)
from app.modules.groups.service import GroupService
from app.core.dependencies import get_session, get_user_supabase, check_group_admin, check_group_member
from app.core.session import SessionContext
from supabase import Client
from typing import Dict, List, Optional

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_user_supabase)) -> GroupService:
    return GroupService(supabase)


@router.get("", response_model=List[GroupResponse])
def list_groups(
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service)
):
    """All groups, by name"""
    return service.fetch_groups()


@router.post("", response_model=GroupResponse, status_code=201)
def create_group(
    group_data: GroupCreate,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service)
):
    """Create a group; the creator becomes its first admin"""
    return service.create_group(group_data.name, group_data.description, session.user_id)


@router.get("/memberships", response_model=Dict[str, str])
def my_memberships(
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service)
):
    """group_id -> 'member' | 'pending' for the caller"""
    return service.fetch_user_memberships(session.user_id)


@router.get("/{group_id}", response_model=GroupDetailsResponse)
def get_group_details(
    group_id: str,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service)
):
    return service.get_group_details(group_id, session.user_id)


@router.put("/{group_id}", response_model=GroupResponse)
def update_group(
    group_id: str,
    group_data: GroupUpdate,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_user_supabase)
):
    check_group_admin(group_id, session, supabase)
    return service.update_group(group_id, group_data)


@router.delete("/{group_id}", status_code=204)
def delete_group(
    group_id: str,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_user_supabase)
):
    check_group_admin(group_id, session, supabase)
    service.delete_group(group_id)
    return None


@router.post("/{group_id}/join", response_model=GroupMemberResponse, status_code=201)
def join_group(
    group_id: str,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service)
):
    """Request to join; stays pending until a group admin approves"""
    return service.join_group(group_id, session.user_id)


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
def list_members(
    group_id: str,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_user_supabase)
):
    check_group_member(group_id, session, supabase)
    return service.list_members(group_id)


@router.post("/{group_id}/members", response_model=AddMembersResult)
def add_members(
    group_id: str,
    body: AddMembersRequest,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_user_supabase)
):
    """Add members by username; they are approved immediately"""
    check_group_admin(group_id, session, supabase)
    return service.add_members_to_group(group_id, body.usernames)


@router.get("/{group_id}/members/pending", response_model=List[GroupMemberResponse])
def list_pending_members(
    group_id: str,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_user_supabase)
):
    check_group_admin(group_id, session, supabase)
    return service.fetch_pending_members(group_id)


@router.put("/memberships/{membership_id}", response_model=Optional[GroupMemberResponse])
def update_membership_status(
    membership_id: str,
    body: MembershipStatusUpdate,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_user_supabase)
):
    """Approve or reject a join request"""
    membership = service.get_membership(membership_id)
    check_group_admin(membership["group_id"], session, supabase)
    return service.update_membership_status(membership_id, body.status)


@router.put("/{group_id}/members/{user_id}/admin", response_model=GroupMemberResponse)
def toggle_group_admin(
    group_id: str,
    user_id: str,
    body: GroupAdminToggle,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_user_supabase)
):
    check_group_admin(group_id, session, supabase)
    return service.toggle_group_admin(group_id, user_id, body.is_admin)


@router.delete("/{group_id}/members/{user_id}", status_code=204)
def remove_member(
    group_id: str,
    user_id: str,
    session: SessionContext = Depends(get_session),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_user_supabase)
):
    """Admins remove anyone; members may remove themselves (leave)"""
    if user_id != session.user_id:
        check_group_admin(group_id, session, supabase)
    service.remove_user_from_group(group_id, user_id)
    return None
