from pydantic import BaseModel, field_validator
from typing import Any, Dict, Optional
from datetime import datetime


class LikeToggleResponse(BaseModel):
    post_id: str
    liked: bool
    like_count: int


class CommentCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Comment cannot be empty")
        return value.strip()


class CommentResponse(BaseModel):
    id: str
    post_id: str
    author_id: str
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    author: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True
