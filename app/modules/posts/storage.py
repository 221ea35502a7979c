"""Supabase Storage for note attachments."""
import secrets
import time
from typing import Dict, Optional
from supabase import Client
from fastapi import HTTPException
from app.config import settings
from app.core.validators import file_extension, validate_attachment
import logging

logger = logging.getLogger(__name__)


class AttachmentStorage:
    def __init__(self, supabase: Client, bucket_name: Optional[str] = None):
        self.supabase = supabase
        self.bucket_name = bucket_name or settings.attachments_bucket

    def build_key(self, user_id: str, filename: str) -> str:
        ext = file_extension(filename).lstrip(".") or "bin"
        return f"{settings.attachments_prefix}/{user_id}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"

    def upload(self, user_id: str, filename: str, content: bytes, content_type: Optional[str]) -> Dict[str, object]:
        """Upload one attachment and return the {url, name, type, size} entry stored on the post"""
        ok, message = validate_attachment(filename, content_type, len(content), settings.max_attachment_bytes)
        if not ok:
            raise HTTPException(status_code=400, detail=message)

        key = self.build_key(user_id, filename)
        file_type = content_type or f"application/{file_extension(filename).lstrip('.')}"
        bucket = self.supabase.storage.from_(self.bucket_name)
        try:
            bucket.upload(key, content, {
                "content-type": file_type,
                "cache-control": "3600",
                "upsert": "false",
            })
        except Exception as e:
            error_message = str(e)
            logger.error(f"Failed to upload {filename} to {self.bucket_name}/{key}: {error_message}")
            if "Bucket not found" in error_message or "does not exist" in error_message:
                raise HTTPException(
                    status_code=500,
                    detail=f"Storage bucket '{self.bucket_name}' not found. Please create it in Supabase Storage settings."
                )
            if "row-level security" in error_message:
                raise HTTPException(status_code=403, detail="Permission denied. Please check storage bucket policies.")
            raise HTTPException(status_code=502, detail=f"Failed to upload {filename}")

        url = bucket.get_public_url(key)
        if not url:
            raise HTTPException(status_code=502, detail="Failed to get public URL for uploaded file")
        logger.info(f"Uploaded attachment {key}")
        return {"url": url, "name": filename, "type": file_type, "size": len(content)}

    def owner_prefix(self, user_id: str) -> str:
        return f"{settings.attachments_prefix}/{user_id}/"

    def owns_key(self, user_id: str, key: Optional[str]) -> bool:
        """True only for keys under the user's own upload folder"""
        if not key or not user_id:
            return False
        return key.startswith(self.owner_prefix(user_id)) and ".." not in key.split("/")

    def is_own_attachment_url(self, user_id: str, url: str) -> bool:
        """The URL must be the public URL this bucket issues for one of the user's keys"""
        key = self.key_from_url(url)
        if not self.owns_key(user_id, key):
            return False
        issued = self.supabase.storage.from_(self.bucket_name).get_public_url(key)
        return bool(issued) and issued.split("?", 1)[0] == url.split("?", 1)[0]

    def key_from_url(self, url: str) -> Optional[str]:
        """Recover the object key from a public URL issued for this bucket"""
        marker = f"/{self.bucket_name}/"
        if not url or marker not in url:
            return None
        return url.split(marker, 1)[1].split("?", 1)[0] or None

    def delete(self, key: str) -> bool:
        try:
            self.supabase.storage.from_(self.bucket_name).remove([key])
            return True
        except Exception as e:
            logger.warning(f"Failed to delete attachment {key}: {e}")
            return False
