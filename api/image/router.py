"""
Image API endpoints.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from auth import dependencies as auth_dependencies
from core.db import MAX_ID, Database, get_db

from . import schemas, service

router = APIRouter()

ImageId = Annotated[int, Path(ge=1, le=MAX_ID)]


@router.post("/images", status_code=status.HTTP_201_CREATED)
async def create_image(
    request: schemas.ImageCreateRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    image = await service.create_image(db, request.url, user_id=int(current_user["id"]))
    return {"image": image}


@router.get("/images/{image_id}")
async def get_image(
    image_id: ImageId,
    db: Database = Depends(get_db),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return {"image": await service.get_image(db, image_id)}
