"""
Collection business logic.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from core.db import Database
from tag import repository as tag_repository
from tag.normalize import normalize_names

from . import repository, schemas

logger = logging.getLogger(__name__)


def _text_or(value: str | None, fallback: str) -> str:
    return (value or "").strip() or fallback


def _to_collection(row: dict) -> dict:
    return {
        "id": int(row["id"]),
        "name": row["name"],
        "description": row["description"],
        "tags": list(row.get("tags") or []),
        "author": {
            "id": int(row["author_id"]),
            "name": row.get("author_name"),
        },
        "like_count": int(row.get("like_count") or 0),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


def _to_style(row: dict) -> dict:
    return {
        "id": int(row["id"]),
        "name": row["name"],
        "description": row.get("description"),
        "published": bool(row.get("published", False)),
        "tags": list(row.get("tags") or []),
        "like_count": int(row.get("like_count") or 0),
        "created_at": row.get("created_at"),
    }


async def _ensure_collection_exists(db: Database, collection_id: int) -> None:
    if not await repository.collection_exists(db, collection_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Collection not found.")


async def create_collection(
    db: Database,
    payload: schemas.CollectionCreateRequest,
    *,
    user_id: int,
) -> dict:
    name = (payload.name or "").strip()
    description = (payload.description or "").strip()
    if not name or not description:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name and description are required.",
        )

    tags = normalize_names(payload.tags or [])

    async with db.transaction() as tx:
        inserted = await repository.insert_collection(
            tx,
            name=name,
            description=description,
            author_id=user_id,
        )
        collection_id = int(inserted["id"])
        if tags:
            await tag_repository.replace_collection_tags(tx, collection_id, tags)
        row = await repository.get_collection(tx, collection_id)

    if row is None:
        raise RuntimeError(f"Collection {collection_id} vanished after insert.")

    logger.info("collection_created collection_id=%s user_id=%s", collection_id, user_id)
    return _to_collection(row)


async def list_collections(db: Database) -> list[dict]:
    return [_to_collection(row) for row in await repository.list_collections(db)]


async def get_collection(db: Database, collection_id: int) -> dict:
    row = await repository.get_collection(db, collection_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Collection not found.")
    return _to_collection(row)


async def list_styles(db: Database, collection_id: int) -> list[dict]:
    return [_to_style(row) for row in await repository.list_styles(db, collection_id)]


async def like_collection(db: Database, collection_id: int, *, user_id: int) -> dict:
    await _ensure_collection_exists(db, collection_id)
    row = await repository.upsert_like(db, user_id=user_id, collection_id=collection_id)
    return {
        "id": int(row["id"]),
        "user_id": int(row["user_id"]),
        "collection_id": int(row["collection_id"]),
        "created_at": row.get("created_at"),
    }


async def unlike_collection(db: Database, collection_id: int, *, user_id: int) -> None:
    await _ensure_collection_exists(db, collection_id)
    if not await repository.delete_like(db, user_id=user_id, collection_id=collection_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Collection is not liked.")


async def update_collection(
    db: Database,
    collection_id: int,
    payload: schemas.CollectionUpdateRequest,
    *,
    user_id: int,
) -> dict:
    tags = normalize_names(payload.tags) if payload.tags is not None else None

    async with db.transaction() as tx:
        current = await repository.get_owned_collection(tx, collection_id, user_id=user_id)
        if current is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Collection not found.")

        updated = await repository.update_collection(
            tx,
            collection_id,
            author_id=user_id,
            name=_text_or(payload.name, current["name"]),
            description=_text_or(payload.description, current["description"]),
        )
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Collection not found.")

        if tags is not None:
            await tag_repository.replace_collection_tags(tx, collection_id, tags)

        row = await repository.get_collection(tx, collection_id)

    if row is None:
        raise RuntimeError(f"Collection {collection_id} vanished after update.")

    logger.info("collection_updated collection_id=%s user_id=%s", collection_id, user_id)
    return _to_collection(row)


async def delete_collection(db: Database, collection_id: int, *, user_id: int) -> None:
    if not await repository.delete_collection(db, collection_id, author_id=user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Collection not found.")
    logger.info("collection_deleted collection_id=%s user_id=%s", collection_id, user_id)
