"""
Collection API endpoints.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status

from auth import dependencies as auth_dependencies
from core.db import MAX_ID, Database, get_db

from . import schemas, service

router = APIRouter(prefix="/collections")

CollectionId = Annotated[int, Path(ge=1, le=MAX_ID)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_collection(
    payload: schemas.CollectionCreateRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    collection = await service.create_collection(db, payload, user_id=int(current_user["id"]))
    return {"collection": collection}


@router.get("")
async def list_collections(
    db: Database = Depends(get_db),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    collections = await service.list_collections(db)
    return {"collections": collections, "count": len(collections)}


@router.get("/{collection_id}")
async def get_collection(
    collection_id: CollectionId,
    db: Database = Depends(get_db),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return {"collection": await service.get_collection(db, collection_id)}


@router.get("/{collection_id}/styles")
async def list_styles(
    collection_id: CollectionId,
    db: Database = Depends(get_db),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    styles = await service.list_styles(db, collection_id)
    return {"styles": styles, "count": len(styles)}


@router.post("/{collection_id}/like", status_code=status.HTTP_201_CREATED)
async def like_collection(
    collection_id: CollectionId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    like = await service.like_collection(db, collection_id, user_id=int(current_user["id"]))
    return {"like": like}


@router.delete("/{collection_id}/like", status_code=status.HTTP_204_NO_CONTENT)
@router.delete("/{collection_id}/unlike", status_code=status.HTTP_204_NO_CONTENT)
async def unlike_collection(
    collection_id: CollectionId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> Response:
    await service.unlike_collection(db, collection_id, user_id=int(current_user["id"]))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{collection_id}")
async def update_collection(
    collection_id: CollectionId,
    payload: schemas.CollectionUpdateRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    collection = await service.update_collection(
        db,
        collection_id,
        payload,
        user_id=int(current_user["id"]),
    )
    return {"collection": collection}


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collection(
    collection_id: CollectionId,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> Response:
    await service.delete_collection(db, collection_id, user_id=int(current_user["id"]))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
