"""
Image persistence (raw SQL).
"""

from __future__ import annotations

from core.db import Executor


async def create_image(conn: Executor, *, url: str, uploader_id: int) -> dict:
    row = await conn.fetch_one(
        """
        INSERT INTO images (url, uploader_id)
        VALUES ($1, $2)
        RETURNING id, url, uploader_id, created_at
        """,
        url,
        uploader_id,
    )
    if row is None:
        raise RuntimeError("Failed to create image.")
    return row


async def get_image(conn: Executor, image_id: int) -> dict | None:
    return await conn.fetch_one(
        """
        SELECT id, url, uploader_id, created_at
        FROM images
        WHERE id = $1
        """,
        image_id,
    )


async def existing_image_ids(conn: Executor, image_ids: list[int]) -> set[int]:
    rows = await conn.fetch_all(
        """
        SELECT id
        FROM images
        WHERE id = ANY($1::bigint[])
        """,
        image_ids,
    )
    return {int(row["id"]) for row in rows}
