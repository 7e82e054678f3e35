"""
Pydantic schemas for item endpoints.

Fields are optional at the parsing layer: missing or blank required values are
reported by the service with a 400. Wrong JSON types and image ids outside the
BIGINT range are rejected by FastAPI with a 422.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field

from core.db import MAX_ID

ImageId = Annotated[int, Field(ge=1, le=MAX_ID)]


class ItemCreateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    brand: str | None = Field(default=None, max_length=100)
    images: list[ImageId] | None = None
    # User id, display name or email; falls back to the caller when unmatched.
    creator: int | str | None = None
    tags: list[str] | None = None


class ItemUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    brand: str | None = Field(default=None, max_length=100)
    images: list[ImageId] | None = None
    creator: int | str | None = None
    tags: list[str] | None = None
