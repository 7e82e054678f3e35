"""
User API endpoints.

Fixed paths (`/users/me`, `/users/profile`, `/users/password`) are declared
before `/users/{user_ref}` so they are not captured by the lookup route.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from auth import dependencies as auth_dependencies
from core.db import Database, get_db

from . import schemas, service

router = APIRouter(prefix="/users")


@router.get("")
async def list_users(
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    users = await service.list_users(db, viewer_id=int(current_user["id"]))
    return {"users": users, "count": len(users)}


@router.get("/me")
async def get_me(
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.me(db, int(current_user["id"]))


@router.patch("/me")
async def update_me(
    payload: schemas.AccountUpdateRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.update_account(db, current_user, payload)


@router.patch("/profile")
async def update_profile(
    payload: schemas.ProfileUpdateRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.update_profile(db, int(current_user["id"]), payload)


@router.patch("/password")
async def change_password(
    payload: schemas.PasswordChangeRequest,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.change_password(db, current_user, payload)


@router.get("/{user_ref}")
async def get_user(
    user_ref: str,
    db: Database = Depends(get_db),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return {"user": await service.get_user(db, user_ref)}


@router.post("/{user_ref}/subscribe", status_code=status.HTTP_201_CREATED)
async def subscribe(
    user_ref: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    subscription = await service.subscribe(db, user_ref, subscriber_id=int(current_user["id"]))
    return {"subscription": subscription}


@router.delete("/{user_ref}/unsubscribe")
async def unsubscribe(
    user_ref: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.unsubscribe(db, user_ref, subscriber_id=int(current_user["id"]))
