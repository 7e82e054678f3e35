"""
User business logic.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from auth import repository as auth_repository
from auth import security
from core.db import Database

from . import repository, schemas

logger = logging.getLogger(__name__)


def _to_user_summary(row: dict) -> dict:
    return {
        "id": int(row["id"]),
        "name": row.get("name"),
        "created_at": row.get("created_at"),
        "subscriber_count": int(row.get("subscriber_count") or 0),
    }


def _to_user_detail(row: dict, *, include_email: bool = False) -> dict:
    detail = {
        "id": int(row["id"]),
        "name": row.get("name"),
        "created_at": row.get("created_at"),
        "profile": {
            "firstname": row.get("firstname"),
            "lastname": row.get("lastname"),
            "bio": row.get("bio"),
        },
        "item_count": int(row.get("item_count") or 0),
        "collection_count": int(row.get("collection_count") or 0),
        "subscriber_count": int(row.get("subscriber_count") or 0),
        "subscription_count": int(row.get("subscription_count") or 0),
    }
    if include_email:
        detail["email"] = row.get("email")
    return detail


async def _require_user(db: Database, user_ref: str) -> dict:
    user = await repository.find_user(db, user_ref)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return user


async def list_users(db: Database, *, viewer_id: int) -> list[dict]:
    rows = await repository.list_users(db, exclude_user_id=viewer_id)
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No user found.")
    return [_to_user_summary(row) for row in rows]


async def get_user(db: Database, user_ref: str) -> dict:
    user = await _require_user(db, user_ref)
    row = await repository.get_user_detail(db, int(user["id"]))
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return _to_user_detail(row)


async def me(db: Database, user_id: int) -> dict:
    row = await repository.get_user_detail(db, user_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return _to_user_detail(row, include_email=True)


async def update_account(db: Database, current_user: dict, payload: schemas.AccountUpdateRequest) -> dict:
    user_id = int(current_user["id"])
    name = (payload.name or "").strip() or current_user.get("name")
    email = auth_repository.normalize_email(payload.email or "") or str(current_user["email"])

    if "@" not in email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is invalid.")

    if email != current_user["email"]:
        taken = await auth_repository.get_user_by_email(db, email)
        if taken is not None and int(taken["id"]) != user_id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered.")

    if name and name != current_user.get("name"):
        taken = await auth_repository.get_user_by_name(db, name)
        if taken is not None and int(taken["id"]) != user_id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Name is already taken.")

    row = await repository.update_account(db, user_id, name=name, email=email)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    logger.info("account_updated user_id=%s", user_id)
    return {
        "id": int(row["id"]),
        "name": row.get("name"),
        "email": row["email"],
        "updated_at": row.get("updated_at"),
    }


async def update_profile(db: Database, user_id: int, payload: schemas.ProfileUpdateRequest) -> dict:
    current = await repository.get_profile(db, user_id) or {}
    provided = payload.model_dump(exclude_unset=True)

    values = {
        field: provided[field] if field in provided else current.get(field)
        for field in ("firstname", "lastname", "bio")
    }
    row = await repository.upsert_profile(db, user_id, **values)
    return {
        "firstname": row.get("firstname"),
        "lastname": row.get("lastname"),
        "bio": row.get("bio"),
        "updated_at": row.get("updated_at"),
    }


async def change_password(db: Database, current_user: dict, payload: schemas.PasswordChangeRequest) -> dict:
    user_id = int(current_user["id"])
    if not security.verify_password(payload.password, str(current_user.get("password_hash") or "")):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid password.")

    password_hash = security.hash_password(payload.newpassword)
    async with db.transaction() as tx:
        await repository.update_password(tx, user_id, password_hash=password_hash)
        # Existing sessions must log in again with the new password.
        await auth_repository.revoke_all_refresh_tokens_for_user(tx, user_id)

    logger.info("password_changed user_id=%s", user_id)
    return {"ok": True}


async def subscribe(db: Database, user_ref: str, *, subscriber_id: int) -> dict:
    user = await _require_user(db, user_ref)
    user_id = int(user["id"])
    if user_id == subscriber_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot subscribe to yourself.")

    row = await repository.insert_subscription(db, subscriber_id=subscriber_id, user_id=user_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already subscribed.")

    logger.info("user_subscribed subscriber_id=%s user_id=%s", subscriber_id, user_id)
    return {
        "subscriber_id": int(row["subscriber_id"]),
        "user_id": int(row["user_id"]),
        "created_at": row.get("created_at"),
    }


async def unsubscribe(db: Database, user_ref: str, *, subscriber_id: int) -> dict:
    user = await _require_user(db, user_ref)
    user_id = int(user["id"])

    deleted = await repository.delete_subscription(db, subscriber_id=subscriber_id, user_id=user_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not subscribed.")

    logger.info("user_unsubscribed subscriber_id=%s user_id=%s", subscriber_id, user_id)
    return {"ok": True, "user_id": user_id}
