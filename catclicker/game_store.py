"""Redis persistence for per-session game records.

One JSON record per session, always rewritten whole. Store failures never reach the
player: they are logged and reported back as `persisted=False`.

Two failure kinds are kept apart:
- the store is unreachable: the last state this process saw for the session is used
  (a fresh default only when there is none) and nothing is written over the stored key;
- the stored record is unreadable: it is replaced by a fresh default, which the next
  command writes back.

A missing record is only rebuilt from memory when the newest state of that session
never reached the store.
"""

from __future__ import annotations

import logging
import os
from collections import OrderedDict
from dataclasses import dataclass
from uuid import UUID, uuid4

import redis
from pydantic import ValidationError

from catclicker.api.models import GameState
from catclicker.catalog.registry import ProducerCatalog
from catclicker.core.rules import default_state, normalize_state

logger = logging.getLogger(__name__)

SESSIONS_SET_KEY = "catclicker:sessions"
SESSION_KEY_PREFIX = "catclicker:session:"  # + {uuid}


class PersistenceUnavailable(RuntimeError):
    """The store could not be read or written, or held an unreadable record."""


class StoreUnreachable(PersistenceUnavailable):
    pass


class UnreadableRecord(PersistenceUnavailable):
    pass


class RecentSessions:
    """Bounded per-process copy of the last known state of each session.

    Keeps a session playable while the store is down.
    """

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self._states: OrderedDict[UUID, GameState] = OrderedDict()
        self._unsaved: set[UUID] = set()

    def remember(self, session_id: UUID, state: GameState, *, saved: bool) -> None:
        self._states[session_id] = state.model_copy(deep=True)
        self._states.move_to_end(session_id)
        if saved:
            self._unsaved.discard(session_id)
        else:
            self._unsaved.add(session_id)
        while len(self._states) > self.max_size:
            evicted, _ = self._states.popitem(last=False)
            self._unsaved.discard(evicted)

    def is_unsaved(self, session_id: UUID) -> bool:
        """True when the newest state of the session never reached the store."""
        return session_id in self._unsaved

    def recall(self, session_id: UUID) -> GameState | None:
        state = self._states.get(session_id)
        return state.model_copy(deep=True) if state is not None else None

    def forget(self, session_id: UUID) -> None:
        self._states.pop(session_id, None)
        self._unsaved.discard(session_id)

    def clear(self) -> None:
        self._states.clear()
        self._unsaved.clear()

    def __len__(self) -> int:
        return len(self._states)


recent_sessions = RecentSessions(max_size=int(os.environ.get("CATCLICKER_SESSION_CACHE_SIZE", "1024")))


@dataclass(frozen=True, slots=True)
class LoadResult:
    # None only when the store answered and neither it nor the cache knows the session.
    state: GameState | None
    # The store answered; writing back is safe.
    reachable: bool
    # The state came from a valid stored record.
    record_ok: bool


def _session_key(session_id: UUID) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def load_game(*, r: redis.Redis, session_id: UUID, catalog: ProducerCatalog) -> GameState | None:
    """Read and normalize a session record. Returns None when no record exists."""

    try:
        raw = r.get(_session_key(session_id))
    except redis.RedisError as e:
        raise StoreUnreachable(f"Failed to read session {session_id}: {e}") from e
    if not raw:
        return None

    try:
        state = GameState.model_validate_json(raw)
    except ValidationError as e:
        raise UnreadableRecord(f"Unreadable record for session {session_id}") from e
    return normalize_state(state, catalog)


def load_game_or_default(
    *,
    r: redis.Redis,
    session_id: UUID,
    catalog: ProducerCatalog,
    now: int,
) -> LoadResult:
    try:
        state = load_game(r=r, session_id=session_id, catalog=catalog)
    except StoreUnreachable as e:
        cached = recent_sessions.recall(session_id)
        if cached is not None:
            logger.warning("%s; continuing with the last known in-memory state", e)
            return LoadResult(state=cached, reachable=False, record_ok=False)
        logger.warning("%s; continuing with a fresh in-memory state", e)
        return LoadResult(state=default_state(catalog, now=now), reachable=False, record_ok=False)
    except UnreadableRecord as e:
        logger.warning("%s; replacing it with a fresh state", e)
        return LoadResult(state=default_state(catalog, now=now), reachable=True, record_ok=False)

    if state is None:
        # Played only while the store was down: the next save recreates the record.
        if recent_sessions.is_unsaved(session_id):
            return LoadResult(state=recent_sessions.recall(session_id), reachable=True, record_ok=False)
        recent_sessions.forget(session_id)
        return LoadResult(state=None, reachable=True, record_ok=False)

    recent_sessions.remember(session_id, state, saved=True)
    return LoadResult(state=state, reachable=True, record_ok=True)


def save_game(*, r: redis.Redis, session_id: UUID, state: GameState) -> bool:
    try:
        r.set(_session_key(session_id), state.model_dump_json())
        r.sadd(SESSIONS_SET_KEY, str(session_id))
    except redis.RedisError as e:
        logger.warning("Failed to save session %s: %s", session_id, e)
        recent_sessions.remember(session_id, state, saved=False)
        return False
    recent_sessions.remember(session_id, state, saved=True)
    return True


def delete_game(*, r: redis.Redis, session_id: UUID) -> bool:
    recent_sessions.forget(session_id)
    try:
        r.delete(_session_key(session_id))
        r.srem(SESSIONS_SET_KEY, str(session_id))
    except redis.RedisError as e:
        logger.warning("Failed to delete session %s: %s", session_id, e)
        return False
    return True


def create_session(*, r: redis.Redis, catalog: ProducerCatalog, now: int) -> tuple[UUID, GameState, bool]:
    session_id = uuid4()
    state = default_state(catalog, now=now)
    persisted = save_game(r=r, session_id=session_id, state=state)
    logger.info("Created session %s (persisted=%s)", session_id, persisted)
    return session_id, state, persisted


def list_session_ids(*, r: redis.Redis) -> list[UUID]:
    try:
        ids = sorted(r.smembers(SESSIONS_SET_KEY))
    except redis.RedisError as e:
        logger.warning("Failed to list sessions: %s", e)
        return []
    out: list[UUID] = []
    for sid in ids:
        try:
            out.append(UUID(sid))
        except ValueError:
            continue
    return out
