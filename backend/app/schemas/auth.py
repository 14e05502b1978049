"""
Schemas for authentication endpoints.
"""

import re
from typing import Optional

from pydantic import Field, field_validator

from app.schemas.common import CamelModel


def check_mobile(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not re.fullmatch(r"[6-9]\d{9}", v):
        raise ValueError("Mobile number must be 10 digits")
    return v


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    role: str


class RegisterRequest(CamelModel):
    """
    Property owner self-registration.

    Attributes:
        username: Login name (3-50 chars, letters, digits, ``._-``)
        password: At least 8 characters
        mobile: 10 digit Indian mobile number
    """
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=200)
    mobile: Optional[str] = None
    email: Optional[str] = None
    district: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not re.fullmatch(r"[A-Za-z0-9._-]+", v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return v

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, v: Optional[str]) -> Optional[str]:
        return check_mobile(v)


class ProfileUpdateRequest(CamelModel):
    """Fields omitted from the body are left unchanged."""
    full_name: Optional[str] = Field(None, max_length=200)
    mobile: Optional[str] = None
    email: Optional[str] = Field(None, max_length=255)

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, v: Optional[str]) -> Optional[str]:
        return check_mobile(v)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class MeResponse(CamelModel):
    id: str
    username: str
    role: str
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    district: Optional[str] = None
