from __future__ import annotations

import logging

import redis
from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import bearer_token, get_redis
from app.api.models import AnonymousRequest, AuthResponse, LoginRequest, RegisterRequest, UserDataResponse
from app.auth_store import authenticate, issue_token, register_anonymous, register_user, user_for_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, response_model_exclude_none=True)
async def register_route(payload: RegisterRequest, r: redis.Redis = Depends(get_redis)) -> AuthResponse:
    try:
        user = register_user(r=r, email=payload.email, password=payload.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return AuthResponse(user=user, token=issue_token(r=r, user=user))


@router.post("/login", response_model=AuthResponse, response_model_exclude_none=True)
async def login_route(payload: LoginRequest, r: redis.Redis = Depends(get_redis)) -> AuthResponse:
    try:
        user = authenticate(r=r, email=payload.email, password=payload.password)
    except ValueError as e:
        logger.info("login refused for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e
    return AuthResponse(user=user, token=issue_token(r=r, user=user))


@router.post("/anonymous", response_model=AuthResponse, response_model_exclude_none=True)
async def anonymous_route(payload: AnonymousRequest, r: redis.Redis = Depends(get_redis)) -> AuthResponse:
    try:
        user = register_anonymous(options=payload.options)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return AuthResponse(user=user, token=issue_token(r=r, user=user))


@router.get("/userdata", response_model=UserDataResponse, response_model_exclude_none=True)
async def userdata_route(
    token: str | None = Depends(bearer_token),
    r: redis.Redis = Depends(get_redis),
) -> UserDataResponse:
    user = user_for_token(r=r, token=token) if token else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing token")
    return UserDataResponse(user=user)
