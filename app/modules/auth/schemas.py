from pydantic import BaseModel, EmailStr, field_validator, model_validator
from typing import Optional, Dict, Any

from app.core.validators import normalize_username, validate_password, validate_username


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user_id: str
    email: str


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str
    full_name: str
    username: str
    agreed_to_terms: bool = False

    @field_validator("full_name")
    @classmethod
    def full_name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Full name is required")
        return value.strip()

    @field_validator("username")
    @classmethod
    def username_format(cls, value: str) -> str:
        ok, message = validate_username(value)
        if not ok:
            raise ValueError(message)
        return normalize_username(value)

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        ok, message = validate_password(value)
        if not ok:
            raise ValueError(message)
        return value

    @model_validator(mode="after")
    def passwords_and_terms(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        if not self.agreed_to_terms:
            raise ValueError("Please agree to the terms and conditions")
        return self


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class PasswordStrengthRequest(BaseModel):
    password: str


class PasswordStrengthResponse(BaseModel):
    strength: int
    label: str


class SessionResponse(BaseModel):
    user: Dict[str, Any]
    profile: Optional[Dict[str, Any]] = None
    role: Optional[str] = None
    is_universal_admin: bool = False
    is_group_admin: bool = False
