"""
Authentication Schemas
Request and response models for auth endpoints.
"""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


# =============================================================================
# Request Schemas
# =============================================================================

class LoginRequest(BaseModel):
    """Request body for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="Password or temporary password")


# =============================================================================
# Response Schemas
# =============================================================================

class UserResponse(BaseModel):
    """Sanitized identity returned after login. Never carries password material."""

    id: UUID = Field(..., description="User unique identifier")
    first_name: str | None = Field(None, description="First name")
    last_name: str | None = Field(None, description="Last name")
    email: EmailStr = Field(..., description="User email address")
    organisation_ids: list[UUID] = Field(default_factory=list, description="Organisations the user belongs to")
    is_admin: bool = Field(..., description="Platform administrator flag")
    must_change_password: bool = Field(..., description="Password must be changed before continuing")

    model_config = {"from_attributes": True}


class LoginResponse(UserResponse):
    """Identity plus the session token (also set as an HTTP-only cookie)."""

    access_token: str = Field(..., description="Session token")
    token_type: str = Field(default="bearer", description="Token type")


class AzureStatusResponse(BaseModel):
    enabled: bool = Field(..., description="Azure SSO fully configured")
    configured: bool = Field(..., description="Client and tenant ids present")


class MessageResponse(BaseModel):
    message: str
