from typing import Any, Dict, Optional

from pydantic import EmailStr, Field

from .base import CamelModel, UTCDateTime


class UserBase(CamelModel):
    email: EmailStr
    name: Optional[str] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=1)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class UserProfileUpdate(CamelModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    profile_picture: Optional[str] = None


class User(UserBase):
    id: int
    bio: Optional[str] = None
    profile_picture: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    created_at: Optional[UTCDateTime] = None


class AuthResult(CamelModel):
    token: str
    token_type: str = "bearer"
    user: User
