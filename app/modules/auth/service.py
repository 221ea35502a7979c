import hashlib
import time
from supabase import Client
from app.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from app.core.realtime import ChangeFeed, SessionEventType, get_change_feed
from fastapi import HTTPException
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def _cache_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, supabase: Client, feed: Optional[ChangeFeed] = None):
        self.supabase = supabase
        self.feed = feed or get_change_feed()

    def _username_taken(self, username: str) -> bool:
        result = self.supabase.table("profiles")\
            .select("id")\
            .eq("username", username)\
            .limit(1)\
            .execute()
        return bool(result.data)

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new user; the profile row is created by the Supabase trigger from user_metadata."""
        try:
            if self._username_taken(register_data.username):
                raise HTTPException(status_code=409, detail="Username is already taken")

            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": {
                        "full_name": register_data.full_name,
                        "username": register_data.username,
                    }
                }
            })

            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to create account")

            logger.info(f"Registered user {auth_response.user.id}")
            return RegisterResponse(
                user_id=auth_response.user.id,
                email=auth_response.user.email or register_data.email,
                message="Account created! Please check your email to verify your account."
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User already exists")
            logger.error(f"Registration failed: {error_message}")
            raise HTTPException(status_code=500, detail="Failed to create account")

    def login(self, login_data: LoginRequest) -> TokenResponse:
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })

            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid credentials")

            self.feed.emit_session(SessionEventType.SIGNED_IN, auth_response.user.id)
            return TokenResponse(
                access_token=auth_response.session.access_token,
                refresh_token=auth_response.session.refresh_token,
                token_type="bearer",
                user_id=auth_response.user.id,
                email=auth_response.user.email or login_data.email
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password")
            logger.error(f"Login failed: {error_message}")
            raise HTTPException(status_code=500, detail="Login failed")

    def refresh(self, refresh_token: str) -> TokenResponse:
        try:
            auth_response = self.supabase.auth.refresh_session(refresh_token)
            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid or expired refresh token")
            self.feed.emit_session(SessionEventType.TOKEN_REFRESHED, auth_response.user.id)
            return TokenResponse(
                access_token=auth_response.session.access_token,
                refresh_token=auth_response.session.refresh_token,
                token_type="bearer",
                user_id=auth_response.user.id,
                email=auth_response.user.email or ""
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Token refresh failed: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = _cache_key(token)
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "created_at": user.created_at,
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def start_session(self, user_id: str) -> None:
        """Announce the session a client resumed with an existing token."""
        self.feed.emit_session(SessionEventType.INITIAL_SESSION, user_id)

    def logout(self, token: str, user_id: Optional[str] = None) -> bool:
        # Tokens are stateless JWTs; dropping our cache entry is the server-side part of logout
        _AUTH_USER_CACHE.pop(_cache_key(token), None)
        try:
            # Revokes this token's session only; the client's own session is left alone
            self.supabase.auth.admin.sign_out(token)
        except Exception as e:
            logger.warning(f"Supabase sign_out failed: {e}")
            return False
        if user_id:
            self.feed.emit_session(SessionEventType.SIGNED_OUT, user_id)
        return True
