"""
Pydantic schemas for user endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class AccountUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=320)


class ProfileUpdateRequest(BaseModel):
    firstname: str | None = Field(default=None, max_length=100)
    lastname: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=2000)


class PasswordChangeRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=128)
    newpassword: str = Field(..., min_length=8, max_length=128)
