from pydantic import BaseModel, field_validator
from typing import List, Optional
from datetime import datetime


class FolderCreate(BaseModel):
    name: str
    parent_folder_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Folder name is required")
        return value.strip()


class FolderResponse(BaseModel):
    id: str
    name: str
    user_id: str
    parent_folder_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FolderNode(FolderResponse):
    children: List["FolderNode"] = []


class AddPostsToFolder(BaseModel):
    post_ids: List[str]

    @field_validator("post_ids")
    @classmethod
    def at_least_one(cls, value: List[str]) -> List[str]:
        ids = list(dict.fromkeys(v for v in value if v))
        if not ids:
            raise ValueError("Select at least one note")
        return ids


class AddPostsResult(BaseModel):
    folder_id: str
    updated: List[str]


FolderNode.model_rebuild()
