"""
Item business logic.

Multi-statement mutations (item row, brand, images, tags) run inside one
`Database.transaction()`.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from core.db import Database, Executor
from image import service as image_service
from tag import repository as tag_repository
from tag.normalize import normalize_name, normalize_names
from user import repository as user_repository

from . import repository, schemas

logger = logging.getLogger(__name__)

UPVOTE = 1
DOWNVOTE = -1


def _text_or(value: str | None, fallback: str) -> str:
    # Blank strings keep the stored value, same as an omitted field.
    return (value or "").strip() or fallback


def _to_item(row: dict) -> dict:
    return {
        "id": int(row["id"]),
        "name": row["name"],
        "description": row["description"],
        "brand": row.get("brand"),
        "tags": list(row.get("tags") or []),
        "images": list(row.get("images") or []),
        "creator": {
            "id": int(row["creator_id"]),
            "name": row.get("creator_name"),
        },
        "vote_score": int(row.get("vote_score") or 0),
        "favorite_count": int(row.get("favorite_count") or 0),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


def _to_item_detail(row: dict) -> dict:
    item = _to_item(row)
    item["styles"] = list(row.get("styles") or [])
    item["my_vote"] = row.get("my_vote")
    item["is_favorited"] = bool(row.get("is_favorited", False))
    return item


def _to_vote(row: dict) -> dict:
    return {
        "id": int(row["id"]),
        "user_id": int(row["user_id"]),
        "item_id": int(row["item_id"]),
        "vote": int(row["vote"]),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


async def _resolve_creator(conn: Executor, creator: int | str | None, *, default: int) -> int:
    if creator is None or not str(creator).strip():
        return default
    user = await user_repository.find_user(conn, creator)
    return int(user["id"]) if user is not None else default


async def _ensure_item_exists(db: Database, item_id: int) -> None:
    if not await repository.item_exists(db, item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found.")


async def create_item(db: Database, payload: schemas.ItemCreateRequest, *, user_id: int) -> dict:
    name = (payload.name or "").strip()
    description = (payload.description or "").strip()
    if not name or not description:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name and description are required.",
        )

    if not payload.images:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one image is required.",
        )

    brand = normalize_name(payload.brand or "")
    if not brand:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Brand is required.")

    tags = normalize_names(payload.tags or [])
    image_ids = list(dict.fromkeys(payload.images))

    async with db.transaction() as tx:
        await image_service.ensure_images_exist(tx, image_ids)
        creator_id = await _resolve_creator(tx, payload.creator, default=user_id)
        brand_row = await tag_repository.upsert_brand(tx, brand)

        inserted = await repository.insert_item(
            tx,
            name=name,
            description=description,
            brand_id=int(brand_row["id"]),
            creator_id=creator_id,
        )
        item_id = int(inserted["id"])
        await repository.replace_item_images(tx, item_id, image_ids)
        if tags:
            await tag_repository.replace_item_tags(tx, item_id, tags)

        row = await repository.get_item(tx, item_id)

    if row is None:
        raise RuntimeError(f"Item {item_id} vanished after insert.")

    logger.info("item_created item_id=%s creator_id=%s user_id=%s", item_id, creator_id, user_id)
    return _to_item(row)


async def list_items(db: Database) -> list[dict]:
    rows = await repository.list_items(db)
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No item found.")
    return [_to_item(row) for row in rows]


async def get_item(db: Database, item_id: int, *, viewer_id: int) -> dict:
    row = await repository.get_item_detail(db, item_id, viewer_id=viewer_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found.")
    return _to_item_detail(row)


async def favorite_item(db: Database, item_id: int, *, user_id: int) -> dict:
    await _ensure_item_exists(db, item_id)
    row = await repository.upsert_favorite(db, user_id=user_id, item_id=item_id)
    return {"id": int(row["id"])}


async def unfavorite_item(db: Database, item_id: int, *, user_id: int) -> None:
    await _ensure_item_exists(db, item_id)
    if not await repository.delete_favorite(db, user_id=user_id, item_id=item_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Item is not favorited.")


async def _vote(db: Database, item_id: int, *, user_id: int, vote: int) -> dict:
    await _ensure_item_exists(db, item_id)
    row = await repository.upsert_vote(db, user_id=user_id, item_id=item_id, vote=vote)
    return _to_vote(row)


async def upvote_item(db: Database, item_id: int, *, user_id: int) -> dict:
    return await _vote(db, item_id, user_id=user_id, vote=UPVOTE)


async def downvote_item(db: Database, item_id: int, *, user_id: int) -> dict:
    return await _vote(db, item_id, user_id=user_id, vote=DOWNVOTE)


async def unvote_item(db: Database, item_id: int, *, user_id: int) -> None:
    await _ensure_item_exists(db, item_id)
    if not await repository.delete_vote(db, user_id=user_id, item_id=item_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Item is not voted.")


async def update_item(
    db: Database,
    item_id: int,
    payload: schemas.ItemUpdateRequest,
    *,
    user_id: int,
) -> dict:
    if payload.images is not None and not payload.images:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one image is required.",
        )

    brand = None
    if payload.brand is not None:
        brand = normalize_name(payload.brand)
        if not brand:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Brand is invalid.")

    tags = normalize_names(payload.tags) if payload.tags is not None else None
    image_ids = list(dict.fromkeys(payload.images)) if payload.images is not None else None

    async with db.transaction() as tx:
        current = await repository.get_owned_item(tx, item_id, user_id=user_id)
        if current is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found.")

        brand_id = int(current["brand_id"])
        if brand is not None:
            brand_id = int((await tag_repository.upsert_brand(tx, brand))["id"])

        creator_id = int(current["creator_id"])
        if payload.creator is not None:
            creator_id = await _resolve_creator(tx, payload.creator, default=creator_id)

        if image_ids is not None:
            await image_service.ensure_images_exist(tx, image_ids)

        updated = await repository.update_item(
            tx,
            item_id,
            owner_id=user_id,
            name=_text_or(payload.name, current["name"]),
            description=_text_or(payload.description, current["description"]),
            brand_id=brand_id,
            creator_id=creator_id,
        )
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found.")

        if image_ids is not None:
            await repository.replace_item_images(tx, item_id, image_ids)
        if tags is not None:
            await tag_repository.replace_item_tags(tx, item_id, tags)

        row = await repository.get_item(tx, item_id)

    if row is None:
        raise RuntimeError(f"Item {item_id} vanished after update.")

    logger.info("item_updated item_id=%s user_id=%s", item_id, user_id)
    return _to_item(row)


async def delete_item(db: Database, item_id: int, *, user_id: int) -> None:
    if not await repository.delete_item(db, item_id, owner_id=user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found.")
    logger.info("item_deleted item_id=%s user_id=%s", item_id, user_id)
