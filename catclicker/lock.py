from __future__ import annotations

import logging
import os
from contextlib import contextmanager

import redis

logger = logging.getLogger(__name__)


class SessionBusyError(RuntimeError):
    pass


def get_lock_ttl_ms() -> int:
    return int(os.environ.get("CATCLICKER_LOCK_TTL_MS", "5000"))


@contextmanager
def session_lock(*, r: redis.Redis, session_id: str, ttl_ms: int | None = None):
    """Best-effort per-session lock so one command at a time mutates a session.

    If Redis is unreachable the command runs unlocked; the store degrades the same way.
    """

    key = f"lock:session:{session_id}"
    store_ok = True
    try:
        acquired = r.set(key, "1", nx=True, px=ttl_ms or get_lock_ttl_ms())
    except redis.RedisError as e:
        logger.warning("Session lock unavailable for %s: %s", session_id, e)
        store_ok = False

    if not store_ok:
        yield
        return

    if not acquired:
        raise SessionBusyError("Session is busy")
    try:
        yield
    finally:
        try:
            r.delete(key)
        except redis.RedisError as e:
            # The TTL releases it eventually.
            logger.warning("Failed to release session lock for %s: %s", session_id, e)
