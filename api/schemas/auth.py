"""Authentication and profile schemas."""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    """Self-registration payload. Role is checked by the service."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=1, description="At least 6 characters")
    role: str = Field(description="jobseeker or employer")
    phone: Optional[str] = Field(None, max_length=50)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileFields(BaseModel):
    bio: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    skills: Optional[list[str]] = None


class CompanyFields(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)


class ProfileUpdateRequest(BaseModel):
    """Fields a user may change on their own account."""

    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    profile: Optional[ProfileFields] = None
    company: Optional[CompanyFields] = None


class CreateAdminRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=1)
