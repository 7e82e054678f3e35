"""
Auth business logic.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status

from core.db import Database, Executor

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        email=str(user_row["email"]),
        name=user_row.get("name"),
        is_active=bool(user_row["is_active"]),
        created_at=user_row["created_at"],
    )


async def _issue_token_pair(
    conn: Executor,
    *,
    user_row: dict,
    user_agent: str | None = None,
    ip_address: str | None = None,
    replaced_token_id: int | None = None,
) -> schemas.TokenPairResponse:
    user_id = int(user_row["id"])

    access_token = security.build_access_token(user_id=user_id, email=str(user_row["email"]))
    raw_refresh_token = security.build_refresh_token()
    expires_at = _utc_now() + timedelta(days=security.refresh_token_expire_days())

    refresh_row = await repository.insert_refresh_token(
        conn,
        user_id=user_id,
        token_hash=security.hash_refresh_token(raw_refresh_token),
        expires_at=expires_at,
        user_agent=user_agent,
        ip_address=ip_address,
    )

    if replaced_token_id is not None:
        await repository.set_refresh_token_replacement(
            conn,
            old_token_id=replaced_token_id,
            new_token_id=int(refresh_row["id"]),
        )

    return schemas.TokenPairResponse(
        access_token=access_token,
        refresh_token=raw_refresh_token,
    )


async def signup(
    db: Database,
    payload: schemas.SignupRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    if await repository.get_user_by_email(db, payload.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already registered.",
        )
    if payload.name and await repository.get_user_by_name(db, payload.name) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Name is already taken.",
        )

    password_hash = security.hash_password(payload.password)
    async with db.transaction() as tx:
        user_row = await repository.create_user(
            tx,
            email=payload.email,
            password_hash=password_hash,
            name=payload.name,
        )
        tokens = await _issue_token_pair(
            tx,
            user_row=user_row,
            user_agent=user_agent,
            ip_address=ip_address,
        )

    logger.info("user_signed_up user_id=%s", user_row["id"])
    return schemas.AuthResponse(user=to_user_response(user_row), tokens=tokens)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def login(
    db: Database,
    payload: schemas.LoginRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    user_row = await repository.get_user_by_email(db, payload.email)
    # Unknown email and wrong password share one message.
    if user_row is None or not security.verify_password(
        payload.password, str(user_row.get("password_hash") or "")
    ):
        raise _unauthorized("Invalid email or password.")
    if not bool(user_row.get("is_active", False)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive.")

    tokens = await _issue_token_pair(db, user_row=user_row, user_agent=user_agent, ip_address=ip_address)
    logger.info("user_logged_in user_id=%s", user_row["id"])
    return schemas.AuthResponse(user=to_user_response(user_row), tokens=tokens)


async def _live_refresh_token(db: Database, raw_refresh_token: str) -> tuple[dict, dict]:
    """
    Look up a presented refresh token and its owner.

    Expired tokens, and tokens whose owner is gone or inactive, are revoked on
    the way out so they cannot be retried.
    """
    token_row = await repository.get_refresh_token_by_hash(db, security.hash_refresh_token(raw_refresh_token))
    if token_row is None:
        raise _unauthorized("Invalid refresh token.")
    if token_row.get("revoked_at") is not None:
        raise _unauthorized("Refresh token is revoked.")

    token_id = int(token_row["id"])
    expires_at = token_row.get("expires_at")
    if not isinstance(expires_at, datetime) or expires_at <= _utc_now():
        await repository.revoke_refresh_token_by_id(db, token_id)
        raise _unauthorized("Refresh token is expired.")

    user_row = await repository.get_user_by_id(db, int(token_row["user_id"]))
    if user_row is None or not bool(user_row.get("is_active", False)):
        await repository.revoke_refresh_token_by_id(db, token_id)
        raise _unauthorized("Invalid refresh token owner.")

    return token_row, user_row


async def refresh_tokens(
    db: Database,
    payload: schemas.RefreshRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.TokenPairResponse:
    raw_refresh_token = (payload.refresh_token or "").strip()
    if not raw_refresh_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="refresh_token is required.")

    token_row, user_row = await _live_refresh_token(db, raw_refresh_token)
    token_id = int(token_row["id"])

    # Rotation: the presented token is spent and chained to its replacement.
    async with db.transaction() as tx:
        await repository.mark_refresh_token_used(tx, token_id)
        await repository.revoke_refresh_token_by_id(tx, token_id)
        tokens = await _issue_token_pair(
            tx,
            user_row=user_row,
            user_agent=user_agent,
            ip_address=ip_address,
            replaced_token_id=token_id,
        )

    logger.info("refresh_token_rotated user_id=%s token_id=%s", user_row["id"], token_id)
    return tokens


async def logout(
    db: Database,
    payload: schemas.LogoutRequest,
    *,
    current_user_id: int | None = None,
) -> dict[str, bool]:
    raw_refresh_token = (payload.refresh_token or "").strip()
    if raw_refresh_token:
        await repository.revoke_refresh_token_by_hash(db, security.hash_refresh_token(raw_refresh_token))
    elif current_user_id is not None:
        # No token given: sign the authenticated user out everywhere.
        await repository.revoke_all_refresh_tokens_for_user(db, current_user_id)
        logger.info("user_logged_out_everywhere user_id=%s", current_user_id)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide refresh_token or authenticated user.",
        )
    return {"ok": True}


async def get_user_from_access_token(db: Database, access_token: str) -> dict:
    try:
        payload = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise _unauthorized(str(exc)) from exc

    user_row = await repository.get_user_by_id(db, int(payload["sub"]))
    if user_row is None:
        raise _unauthorized("User not found.")
    if not bool(user_row.get("is_active", False)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive.")
    return user_row
