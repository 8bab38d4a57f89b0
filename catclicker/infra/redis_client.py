from __future__ import annotations

import os

import redis


def get_redis_url() -> str:
    return os.environ.get("CATCLICKER_REDIS_URL") or os.environ.get("REDIS_URL", "redis://localhost:6379/0")


def create_redis() -> redis.Redis:
    # decode_responses=True => strings in/out instead of bytes.
    # Short timeouts: a dead store must not stall the tick loop.
    return redis.Redis.from_url(
        get_redis_url(),
        decode_responses=True,
        socket_connect_timeout=1.0,
        socket_timeout=1.0,
    )


def is_reachable(r: redis.Redis) -> bool:
    try:
        return bool(r.ping())
    except redis.RedisError:
        return False
