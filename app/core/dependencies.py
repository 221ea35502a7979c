"""
Core dependencies for route protection and role checking
"""

from fastapi import Depends, HTTPException, Query, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import SupabaseClient, get_supabase
from app.modules.auth.service import AuthService
from app.core import roles
from app.core.session import SessionContext
from supabase import Client
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    return credentials.credentials


def get_current_user_id(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """Extract current user info from JWT token"""
    return auth_service.get_current_user(token)


def get_user_supabase(token: str = Depends(get_current_token)) -> Client:
    """Supabase client acting as the caller, so RLS sees their identity"""
    return SupabaseClient.client_for_token(token)


def get_ws_supabase(token: Optional[str] = Query(None)) -> Client:
    """WebSocket variant: the token arrives as a query parameter"""
    if not token:
        return get_supabase()
    return SupabaseClient.client_for_token(token)


def get_session(
    token: str = Depends(get_current_token),
    user_data: Dict[str, Any] = Depends(get_current_user_id),
    supabase: Client = Depends(get_user_supabase)
) -> SessionContext:
    """Current user plus their profile (and therefore role)"""
    return SessionContext.load(supabase, user_data, token)


def require_role(required_role: str):
    """Factory function to create a role check dependency"""
    def check_role(session: SessionContext = Depends(get_session)) -> SessionContext:
        if not session.has_role(required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient role. Required: {required_role}"
            )
        return session
    return check_role


def check_group_admin(group_id: str, session: SessionContext, supabase: Client) -> SessionContext:
    """Allow universal admins and members flagged is_admin on this group"""
    if roles.is_group_admin(supabase, session.profile, group_id):
        return session
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a group admin to perform this action"
    )


def is_approved_member(group_id: str, session: SessionContext, supabase: Client) -> bool:
    if session.is_universal_admin:
        return True
    result = supabase.table("group_members")\
        .select("status")\
        .eq("group_id", group_id)\
        .eq("user_id", session.user_id)\
        .maybe_single()\
        .execute()
    membership = result.data if result else None
    return bool(membership) and membership.get("status") == "approved"


def check_group_member(group_id: str, session: SessionContext, supabase: Client) -> SessionContext:
    """Allow universal admins and approved members"""
    if is_approved_member(group_id, session, supabase):
        return session
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a member of this group"
    )
