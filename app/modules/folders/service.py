from supabase import Client
from app.modules.folders.schemas import FolderResponse, FolderNode, AddPostsResult
from app.core.realtime import ChangeFeed, ChangeType, get_change_feed
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def build_folder_tree(folders: List[Dict[str, Any]]) -> List[FolderNode]:
    """
    Nest a flat folder list by parent_folder_id.

    A folder whose parent is missing becomes a root. A folder reachable only
    through a parent cycle is promoted to a root where the cycle is first
    entered, so every folder appears exactly once.
    """
    by_id = {f["id"]: f for f in folders}
    children: Dict[Optional[str], List[Dict[str, Any]]] = {}
    roots: List[Dict[str, Any]] = []
    for folder in folders:
        parent_id = folder.get("parent_folder_id")
        if parent_id and parent_id in by_id and parent_id != folder["id"]:
            children.setdefault(parent_id, []).append(folder)
        else:
            roots.append(folder)

    placed = set()

    def build(folder: Dict[str, Any]) -> FolderNode:
        placed.add(folder["id"])
        node = FolderNode(**folder)
        node.children = [build(child) for child in children.get(folder["id"], []) if child["id"] not in placed]
        return node

    forest = [build(root) for root in roots]
    # Anything left over sits on a cycle
    for folder in folders:
        if folder["id"] not in placed:
            forest.append(build(folder))
    return forest


class FolderService:
    def __init__(self, supabase: Client, feed: Optional[ChangeFeed] = None):
        self.supabase = supabase
        self.feed = feed or get_change_feed()

    def _fetch_folders(self, user_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("folders")\
            .select("*")\
            .eq("user_id", user_id)\
            .order("name")\
            .execute()
        return result.data or []

    def _get_owned_folder(self, folder_id: str, user_id: str) -> Dict[str, Any]:
        result = self.supabase.table("folders")\
            .select("*")\
            .eq("id", folder_id)\
            .maybe_single()\
            .execute()
        folder = result.data if result else None
        if not folder or folder.get("user_id") != user_id:
            raise HTTPException(status_code=404, detail="Folder not found")
        return folder

    def list_folders(self, user_id: str) -> List[FolderResponse]:
        return [FolderResponse(**f) for f in self._fetch_folders(user_id)]

    def get_folder_tree(self, user_id: str) -> List[FolderNode]:
        return build_folder_tree(self._fetch_folders(user_id))

    def create_folder(self, user_id: str, name: str, parent_folder_id: Optional[str] = None) -> FolderResponse:
        if parent_folder_id:
            self._get_owned_folder(parent_folder_id, user_id)
        result = self.supabase.table("folders").insert({
            "name": name,
            "user_id": user_id,
            "parent_folder_id": parent_folder_id,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create folder")
        self.feed.emit("folders", ChangeType.INSERT, new=result.data[0])
        return FolderResponse(**result.data[0])

    def add_posts_to_folder(self, user_id: str, folder_id: str, post_ids: List[str]) -> AddPostsResult:
        """File notes into a folder; ids of notes the caller did not write are skipped"""
        self._get_owned_folder(folder_id, user_id)
        result = self.supabase.table("posts")\
            .update({"folder_id": folder_id})\
            .in_("id", post_ids)\
            .eq("author_id", user_id)\
            .execute()
        updated = [p["id"] for p in result.data or []]
        for post in result.data or []:
            self.feed.emit("posts", ChangeType.UPDATE, new=post)
        skipped = len(post_ids) - len(updated)
        if skipped:
            logger.info(f"Skipped {skipped} notes not owned by {user_id} when filing into {folder_id}")
        return AddPostsResult(folder_id=folder_id, updated=updated)

    def delete_folder(self, user_id: str, folder_id: str) -> bool:
        folder = self._get_owned_folder(folder_id, user_id)

        self.supabase.table("posts")\
            .update({"folder_id": None})\
            .eq("folder_id", folder_id)\
            .execute()
        self.supabase.table("folders")\
            .update({"parent_folder_id": folder.get("parent_folder_id")})\
            .eq("parent_folder_id", folder_id)\
            .execute()
        result = self.supabase.table("folders").delete().eq("id", folder_id).execute()

        self.feed.emit("folders", ChangeType.DELETE, old=folder)
        return bool(result.data)
