"""
Pydantic schemas for collection endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CollectionCreateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] | None = None


class CollectionUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] | None = None
