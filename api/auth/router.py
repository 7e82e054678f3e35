"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from core.db import Database, get_db

from . import dependencies, schemas, service

router = APIRouter(prefix="/auth")


def _client_meta(request: Request) -> dict:
    return {
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
    }


@router.post(
    "/signup",
    response_model=schemas.AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def signup(
    payload: schemas.SignupRequest,
    request: Request,
    db: Database = Depends(get_db),
) -> schemas.AuthResponse:
    return await service.signup(db, payload, **_client_meta(request))


@router.post("/login", response_model=schemas.AuthResponse)
async def login(
    payload: schemas.LoginRequest,
    request: Request,
    db: Database = Depends(get_db),
) -> schemas.AuthResponse:
    return await service.login(db, payload, **_client_meta(request))


@router.post("/refresh", response_model=schemas.TokenPairResponse)
async def refresh(
    payload: schemas.RefreshRequest,
    request: Request,
    db: Database = Depends(get_db),
) -> schemas.TokenPairResponse:
    return await service.refresh_tokens(db, payload, **_client_meta(request))


@router.post("/logout")
async def logout(
    payload: schemas.LogoutRequest,
    db: Database = Depends(get_db),
    current_user: dict | None = Depends(dependencies.get_optional_current_user),
) -> dict:
    current_user_id = int(current_user["id"]) if current_user is not None else None
    return await service.logout(db, payload, current_user_id=current_user_id)


@router.get("/me", response_model=schemas.UserResponse)
async def me(
    current_user: dict = Depends(dependencies.get_current_user),
) -> schemas.UserResponse:
    return service.to_user_response(current_user)
