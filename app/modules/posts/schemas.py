from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from typing import Any, Dict, Literal, Optional, List
from datetime import datetime

from app.core.validators import clean_tags

PostType = Literal["public", "group"]
ApprovalStatus = Literal["pending", "approved", "rejected"]


def _required_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field} is required")
    return value.strip()


class Attachment(BaseModel):
    url: str
    name: str
    type: str
    size: int


class PostCreate(BaseModel):
    title: str
    content: str
    post_type: PostType = "public"
    group_id: Optional[str] = None
    folder_id: Optional[str] = None
    tags: Optional[List[str]] = None
    attachments: Optional[List[Attachment]] = None

    @field_validator("title")
    @classmethod
    def title_required(cls, value: str) -> str:
        return _required_text(value, "Title")

    @field_validator("content")
    @classmethod
    def content_required(cls, value: str) -> str:
        return _required_text(value, "Content")

    @field_validator("tags")
    @classmethod
    def tidy_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return clean_tags(value)

    @model_validator(mode="after")
    def group_matches_type(self):
        if self.post_type == "group" and not self.group_id:
            raise ValueError("Please select a group for group notes")
        if self.post_type == "public":
            self.group_id = None
        return self


class PostUpdate(BaseModel):
    title: str
    content: str
    tags: Optional[List[str]] = None

    @field_validator("title")
    @classmethod
    def title_required(cls, value: str) -> str:
        return _required_text(value, "Title")

    @field_validator("content")
    @classmethod
    def content_required(cls, value: str) -> str:
        return _required_text(value, "Content")

    @field_validator("tags")
    @classmethod
    def tidy_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return clean_tags(value)


class PostRejection(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def reason_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Please provide a rejection reason")
        return value.strip()


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    title: str
    content: str
    author_id: str
    post_type: PostType
    group_id: Optional[str] = None
    approval_status: ApprovalStatus = "pending"
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    folder_id: Optional[str] = None
    tags: Optional[List[str]] = None
    attachments: Optional[List[Attachment]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    author: Optional[Dict[str, Any]] = None
    group: Optional[Dict[str, Any]] = None
    like_count: int = 0
    comment_count: int = 0
    user_has_liked: bool = False


class UserPostCounts(BaseModel):
    total: int = 0
    approved: int = 0
    pending: int = 0
    likes_received: int = 0
