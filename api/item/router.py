"""
Item API endpoints.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status

from auth import dependencies as auth_dependencies
from core.db import MAX_ID, Database, get_db

from . import schemas, service

router = APIRouter(prefix="/items")

ItemId = Annotated[int, Path(ge=1, le=MAX_ID)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: schemas.ItemCreateRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    item = await service.create_item(db, payload, user_id=int(current_user["id"]))
    return {"item": item}


@router.get("")
async def list_items(
    db: Database = Depends(get_db),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    items = await service.list_items(db)
    return {"items": items, "count": len(items)}


@router.get("/{item_id}")
async def get_item(
    item_id: ItemId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return {"item": await service.get_item(db, item_id, viewer_id=int(current_user["id"]))}


@router.post("/{item_id}/favorite", status_code=status.HTTP_201_CREATED)
async def favorite_item(
    item_id: ItemId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    favorite = await service.favorite_item(db, item_id, user_id=int(current_user["id"]))
    return {"favorite": favorite}


@router.delete("/{item_id}/favorite", status_code=status.HTTP_204_NO_CONTENT)
async def unfavorite_item(
    item_id: ItemId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> Response:
    await service.unfavorite_item(db, item_id, user_id=int(current_user["id"]))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{item_id}/upvote")
async def upvote_item(
    item_id: ItemId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return {"upvote": await service.upvote_item(db, item_id, user_id=int(current_user["id"]))}


@router.post("/{item_id}/downvote")
async def downvote_item(
    item_id: ItemId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return {"downvote": await service.downvote_item(db, item_id, user_id=int(current_user["id"]))}


@router.delete("/{item_id}/vote", status_code=status.HTTP_204_NO_CONTENT)
async def unvote_item(
    item_id: ItemId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> Response:
    await service.unvote_item(db, item_id, user_id=int(current_user["id"]))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{item_id}")
async def update_item(
    item_id: ItemId,
    payload: schemas.ItemUpdateRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    item = await service.update_item(db, item_id, payload, user_id=int(current_user["id"]))
    return {"item": item}


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: ItemId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> Response:
    await service.delete_item(db, item_id, user_id=int(current_user["id"]))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
