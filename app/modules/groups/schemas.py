from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, Literal, Optional, List
from datetime import datetime

from app.core.validators import normalize_username, validate_username

MembershipStatus = Literal["member", "pending", "none"]


class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Group name is required")
        return value.strip()


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    avatar_url: Optional[str] = None


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    avatar_url: Optional[str] = None
    created_by: str
    member_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    is_admin: bool = False
    status: Literal["pending", "approved"] = "pending"
    joined_at: Optional[datetime] = None
    user: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class GroupDetailsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group: GroupResponse
    is_member: bool = Field(False, alias="isMember")
    is_admin: bool = Field(False, alias="isAdmin")
    membership_status: MembershipStatus = Field("none", alias="membershipStatus")
    posts: List[Dict[str, Any]] = []


class AddMembersRequest(BaseModel):
    usernames: List[str]

    @field_validator("usernames")
    @classmethod
    def usernames_valid(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("At least one username is required")
        for username in value:
            ok, message = validate_username(username)
            if not ok:
                raise ValueError(f"@{normalize_username(username)}: {message}")
        return value


class AddMembersResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    added: List[str] = []
    already_members: List[str] = Field(default_factory=list, alias="alreadyMembers")
    not_found: List[str] = Field(default_factory=list, alias="notFound")


class MembershipStatusUpdate(BaseModel):
    status: Literal["approved", "rejected"]


class GroupAdminToggle(BaseModel):
    is_admin: bool
