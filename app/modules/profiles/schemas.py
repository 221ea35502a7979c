from pydantic import BaseModel, field_validator
from typing import Literal, Optional, List
from datetime import datetime

from app.core.validators import normalize_username, validate_username

UserRole = Literal["user", "group_admin", "universal_admin"]


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None

    @field_validator("username")
    @classmethod
    def username_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        ok, message = validate_username(value)
        if not ok:
            raise ValueError(message)
        return normalize_username(value)


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    user_role: UserRole = "user"
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MembershipSummary(BaseModel):
    group_id: str
    group_name: Optional[str] = None
    is_admin: bool = False


class ProfileWithMembershipsResponse(ProfileResponse):
    memberships: List[MembershipSummary] = []


class RoleUpdate(BaseModel):
    user_role: UserRole
