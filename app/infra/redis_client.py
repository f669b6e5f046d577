from __future__ import annotations

import redis

from app.config import get_redis_url


def create_redis() -> redis.Redis:
    """Client for the auth store (users by email, issued tokens).

    Room state never touches Redis; sessions live in process memory only.
    """

    # decode_responses=True => strings in/out instead of bytes
    return redis.Redis.from_url(get_redis_url(), decode_responses=True)
