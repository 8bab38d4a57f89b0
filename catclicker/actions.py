from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, get_args
from uuid import UUID

import redis

from catclicker.api.models import CommandOutcome, GameState, ResetDone, Saved
from catclicker.catalog.registry import ProducerCatalog
from catclicker.core import rules
from catclicker.game_store import delete_game, load_game_or_default, recent_sessions, save_game
from catclicker.lock import session_lock

logger = logging.getLogger(__name__)


CommandName = Literal["click", "buy", "upgrade", "tick", "save", "reset"]
COMMAND_NAMES: frozenset[str] = frozenset(get_args(CommandName))


class SessionNotFound(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class CommandResult:
    state: GameState
    outcome: CommandOutcome
    # False when the store could not be read or written for this command.
    persisted: bool


def apply_command(
    *,
    state: GameState,
    catalog: ProducerCatalog,
    command: CommandName,
    payload: dict[str, Any],
    now: int,
) -> tuple[GameState, CommandOutcome]:
    """Run one engine command. Returns the (possibly replaced) state and its outcome."""

    if command == "click":
        return state, rules.click(state)

    if command == "buy":
        producer_id = payload.get("producer_id")
        if not producer_id:
            raise ValueError("producer_id is required")
        return state, rules.buy(state, catalog, str(producer_id))

    if command == "upgrade":
        return state, rules.upgrade_click_power(state)

    if command == "tick":
        return state, rules.tick(state, catalog, now=now)

    if command == "save":
        return state, Saved()

    if command == "reset":
        return rules.reset(catalog, now=now), ResetDone()

    raise ValueError(f"Unknown command: {command}")


def dispatch_command(
    *,
    r: redis.Redis,
    session_id: UUID,
    catalog: ProducerCatalog,
    command: CommandName,
    payload: dict[str, Any] | None = None,
    now: int,
) -> CommandResult:
    """Entry point for the HTTP driver.

    Applies a command by:
    - acquiring the per-session lock
    - loading the session record (last known or fresh state if the store fails)
    - running the engine command
    - rewriting the whole record when the state changed (or on explicit save),
      unless the store could not be read
    """

    if command not in COMMAND_NAMES:
        raise ValueError(f"Unknown command: {command}")

    with session_lock(r=r, session_id=str(session_id)):
        loaded = load_game_or_default(r=r, session_id=session_id, catalog=catalog, now=now)
        if loaded.state is None:
            raise SessionNotFound("Session not found")

        state, outcome = apply_command(
            state=loaded.state, catalog=catalog, command=command, payload=payload or {}, now=now
        )
        logger.debug("session=%s command=%s outcome=%s", session_id, command, outcome.kind)

        # Rejected commands leave the state untouched; nothing to write.
        if not outcome.ok:
            return CommandResult(state=state, outcome=outcome, persisted=loaded.record_ok)

        # The stored record may be newer than what we hold; never write over it blind.
        if not loaded.reachable:
            recent_sessions.remember(session_id, state, saved=False)
            return CommandResult(state=state, outcome=outcome, persisted=False)

        if command == "reset":
            delete_game(r=r, session_id=session_id)

        persisted = save_game(r=r, session_id=session_id, state=state)
        return CommandResult(state=state, outcome=outcome, persisted=persisted)
