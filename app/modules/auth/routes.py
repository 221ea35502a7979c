from fastapi import APIRouter, Depends
from app.database.supabase_client import get_auth_supabase
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    RefreshRequest, PasswordStrengthRequest, PasswordStrengthResponse, SessionResponse
)
from app.modules.auth.service import AuthService
from app.core.dependencies import get_current_token, get_session
from app.core.session import SessionContext
from app.core.validators import password_strength
from supabase import Client

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(supabase: Client = Depends(get_auth_supabase)) -> AuthService:
    return AuthService(supabase)


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    body: RefreshRequest,
    service: AuthService = Depends(get_auth_service)
):
    return service.refresh(body.refresh_token)


@router.post("/logout", status_code=200)
def logout(
    token: str = Depends(get_current_token),
    session: SessionContext = Depends(get_session),
    service: AuthService = Depends(get_auth_service)
):
    service.logout(token, session.user_id)
    return {"message": "Logged out successfully"}


@router.get("/session", response_model=SessionResponse)
def get_current_session(
    session: SessionContext = Depends(get_session),
    service: AuthService = Depends(get_auth_service)
):
    """Resume a session from an existing token (client start-up)."""
    service.start_session(session.user_id)
    return session.as_dict()


@router.get("/me", response_model=SessionResponse)
def get_current_user(session: SessionContext = Depends(get_session)):
    """Current user, profile and role flags (for frontend UI gating)."""
    return session.as_dict()


@router.post("/password-strength", response_model=PasswordStrengthResponse)
def check_password_strength(body: PasswordStrengthRequest):
    return password_strength(body.password)
