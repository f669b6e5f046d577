from __future__ import annotations

import logging
import os

_TRUTHY = {"1", "true", "yes", "on"}


def get_instance_id() -> str:
    return os.environ.get("NODE_APP_INSTANCE", "NONE")


def get_log_level() -> int:
    name = os.environ.get("LOG_LEVEL", "DEBUG").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.DEBUG


def auth_required() -> bool:
    """Whether WebSocket joins must present a token issued by the auth routes."""

    return os.environ.get("REQUIRE_AUTH", "").strip().lower() in _TRUTHY


def get_redis_url() -> str:
    return os.environ.get("REDIS_URL", "redis://localhost:6379/0")
