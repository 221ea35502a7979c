"""
Validation utilities for user input.

These run before any Supabase call; a failing check never reaches the
remote store.
"""
import re
from typing import Dict, List, Optional, Tuple

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 8

ALLOWED_ATTACHMENT_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "text/plain",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
}
ALLOWED_ATTACHMENT_EXTENSIONS = {
    ".pdf", ".docx", ".doc", ".txt", ".jpg", ".jpeg", ".png", ".gif", ".webp",
}


def normalize_username(username: str) -> str:
    return (username or "").strip().lower()


def validate_username(username: str) -> Tuple[bool, str]:
    """
    Validate a username after normalisation.

    Args:
        username: Raw username as typed

    Returns:
        Tuple of (is_valid, error_message)
    """
    value = normalize_username(username)
    if not value:
        return False, "Username is required"
    if len(value) < USERNAME_MIN_LENGTH or len(value) > USERNAME_MAX_LENGTH:
        return False, "Username must be between 3 and 20 characters"
    if not USERNAME_PATTERN.match(value):
        return False, "Username can only contain letters, numbers, and underscores"
    return True, ""


def validate_password(password: str) -> Tuple[bool, str]:
    if not password:
        return False, "Password is required"
    if len(password) < PASSWORD_MIN_LENGTH:
        return False, "Password must be at least 8 characters long"
    return True, ""


def password_strength(password: str) -> Dict[str, object]:
    """Score 0-5 from length and character classes, labelled the way the sign-up form shows it."""
    strength = 0
    if len(password) >= 8:
        strength += 1
    if len(password) >= 12:
        strength += 1
    if re.search(r"[a-z]", password) and re.search(r"[A-Z]", password):
        strength += 1
    if re.search(r"\d", password):
        strength += 1
    if re.search(r"[^a-zA-Z\d]", password):
        strength += 1

    if strength <= 2:
        label = "Weak"
    elif strength <= 3:
        label = "Fair"
    elif strength <= 4:
        label = "Good"
    else:
        label = "Strong"
    return {"strength": strength, "label": label}


def file_extension(filename: str) -> str:
    if "." not in (filename or ""):
        return ""
    return "." + filename.rsplit(".", 1)[-1].lower()


def validate_attachment(filename: str, content_type: Optional[str], size: int, max_bytes: int) -> Tuple[bool, str]:
    if content_type not in ALLOWED_ATTACHMENT_TYPES and file_extension(filename) not in ALLOWED_ATTACHMENT_EXTENSIONS:
        return False, f"{filename} is not a supported file type. Please upload PDF, DOCX, TXT, or image files."
    if size > max_bytes:
        return False, f"{filename} is too large. Maximum file size is {max_bytes // (1024 * 1024)}MB."
    return True, ""


def clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    """Trim, drop blanks and duplicates, keep first-seen order. Empty result becomes None."""
    if not tags:
        return None
    seen: List[str] = []
    for tag in tags:
        value = (tag or "").strip()
        if value and value not in seen:
            seen.append(value)
    return seen or None


def normalize_usernames(usernames: List[str]) -> List[str]:
    result: List[str] = []
    for username in usernames:
        value = normalize_username(username)
        if value and value not in result:
            result.append(value)
    return result
