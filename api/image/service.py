"""
Image business logic.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from core.db import Database, Executor

from . import repository

logger = logging.getLogger(__name__)


def _to_image(row: dict) -> dict:
    return {
        "id": int(row["id"]),
        "url": str(row["url"]),
        "uploader_id": row.get("uploader_id"),
        "created_at": row.get("created_at"),
    }


async def create_image(db: Database, url: str, *, user_id: int) -> dict:
    url = (url or "").strip()
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image url is required.")

    row = await repository.create_image(db, url=url, uploader_id=user_id)
    logger.info("image_created image_id=%s user_id=%s", row["id"], user_id)
    return _to_image(row)


async def get_image(db: Database, image_id: int) -> dict:
    row = await repository.get_image(db, image_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found.")
    return _to_image(row)


async def ensure_images_exist(conn: Executor, image_ids: list[int]) -> None:
    """
    Raise 400 when any referenced image id is unknown.
    """
    missing = set(image_ids) - await repository.existing_image_ids(conn, image_ids)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown image ids: {sorted(missing)}",
        )
