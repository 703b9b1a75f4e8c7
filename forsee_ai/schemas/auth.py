"""
Schemas for users, roles and the /api/auth endpoints.
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field

from forsee_ai.config import DEFAULT_AVATAR_URL

Role = Literal["admin", "engineer", "viewer"]


class User(BaseModel):
    """Application user derived from the identity provider's account."""
    id: str
    name: str
    email: str = ""
    avatarUrl: str = DEFAULT_AVATAR_URL


class AuthSession(BaseModel):
    """Result of a successful login or signup."""
    user: User
    role: Optional[Role] = None
    idToken: str
    refreshToken: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str


class GoogleLoginRequest(BaseModel):
    idToken: str = Field(..., description="Google ID token obtained by the client")


class CurrentUserResponse(BaseModel):
    user: User
    role: Optional[Role] = None


class RoleUpdateRequest(BaseModel):
    role: Role


class RoleRequest(BaseModel):
    role: Role


class RoleRequestResponse(BaseModel):
    userId: str
    pendingRole: Role
