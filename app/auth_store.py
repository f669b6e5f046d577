from __future__ import annotations

import random
from typing import Any
from uuid import uuid4

import bcrypt
import redis
from pydantic import ValidationError

from app.api.models import AuthUser, StoredUser


USERS_KEY = "tiles:auth:users"  # hash: email -> StoredUser json
TOKEN_KEY_PREFIX = "tiles:auth:token:"  # + {token} -> AuthUser json
TOKEN_TTL_S = 7 * 24 * 3600


def _token_key(token: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{token}"


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def _check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def _public(user: StoredUser) -> AuthUser:
    return AuthUser.model_validate(user.model_dump(by_alias=True, exclude={"password_hash"}))


def find_user_by_email(*, r: redis.Redis, email: str) -> StoredUser | None:
    raw = r.hget(USERS_KEY, email)
    if not raw:
        return None
    return StoredUser.model_validate_json(raw)


def register_user(*, r: redis.Redis, email: str, password: str) -> AuthUser:
    email = email.strip()
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        raise ValueError("A valid email address is required")

    user = StoredUser(email=email, name=local, password_hash=_hash_password(password))
    if not r.hsetnx(USERS_KEY, email, user.model_dump_json(by_alias=True)):
        raise ValueError("Email already registered")
    return _public(user)


def authenticate(*, r: redis.Redis, email: str, password: str) -> AuthUser:
    user = find_user_by_email(r=r, email=email.strip())
    if user is None or not _check_password(password, user.password_hash):
        raise ValueError("Invalid email or password")
    return _public(user)


def register_anonymous(*, options: dict[str, Any] | None = None, rng: random.Random | None = None) -> AuthUser:
    rng = rng or random.Random()
    # Client-supplied options win over the generated fields.
    data: dict[str, Any] = {"anonymousId": rng.randint(0, 1000), "anonymous": True, **(options or {})}
    try:
        return AuthUser.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid anonymous options: {e.errors()[0]['msg']}") from e


def issue_token(*, r: redis.Redis, user: AuthUser) -> str:
    token = uuid4().hex
    r.set(_token_key(token), user.model_dump_json(by_alias=True), ex=TOKEN_TTL_S)
    return token


def user_for_token(*, r: redis.Redis, token: str) -> AuthUser | None:
    if not token:
        return None
    raw = r.get(_token_key(token))
    if not raw:
        return None
    return AuthUser.model_validate_json(raw)
