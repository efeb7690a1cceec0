"""
User models for authentication and authorization
"""
from datetime import datetime
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """User roles for authorization"""
    ADMIN = "admin"
    SME = "sme"
    USER = "user"


class SessionUser(BaseModel):
    """Identity attached to a request from its login session"""
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    role: UserRole = UserRole.USER


class UserInDB(BaseModel):
    """Directory record kept for each login; its role is informational only"""
    id: str = Field(..., alias="_id")
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    role: UserRole = UserRole.USER
    created_at: datetime
    updated_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        populate_by_name = True


class UserResponse(BaseModel):
    """User directory response model"""
    id: str
    email: str
    name: Optional[str] = None
    role: UserRole
    last_login_at: Optional[datetime] = None


class GoogleLoginRequest(BaseModel):
    """Google Identity Services credential (ID token)"""
    credential: Optional[str] = None


class AuthUserResponse(BaseModel):
    """Session user wrapper"""
    user: SessionUser


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
