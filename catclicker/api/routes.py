from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
import redis

from catclicker.actions import CommandName, SessionNotFound, dispatch_command
from catclicker.api.deps import get_clock, get_producer_catalog, get_redis
from catclicker.api.models import (
    CommandResponse,
    ProducerInfo,
    ProducerListResponse,
    SessionResponse,
    UnknownProducer,
)
from catclicker.catalog.registry import ProducerCatalog
from catclicker.clock import Clock
from catclicker.core.snapshot import build_snapshot
from catclicker.game_store import create_session, list_session_ids, load_game_or_default
from catclicker.infra.redis_client import is_reachable
from catclicker.lock import SessionBusyError
from catclicker.websocket_hub import hub

router = APIRouter()


@router.websocket("/ws/session/{session_id}")
async def session_updates_ws(websocket: WebSocket, session_id: UUID) -> None:
    sid = str(session_id)
    await hub.connect(sid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(sid, websocket)
    except Exception:
        await hub.disconnect(sid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck(r: redis.Redis = Depends(get_redis)) -> dict[str, str]:
    # The game stays playable without the store, so a dead store is reported, not fatal.
    return {"status": "ok", "store": "ok" if is_reachable(r) else "unavailable"}


@router.get("/producers", response_model=ProducerListResponse)
async def list_producers_route(catalog: ProducerCatalog = Depends(get_producer_catalog)) -> ProducerListResponse:
    return ProducerListResponse(
        producers=[
            ProducerInfo(
                id=p.id,
                name=p.name,
                description=p.description,
                base_cost=p.base_cost,
                base_rate=p.base_rate,
                emoji=p.emoji,
            )
            for p in catalog
        ]
    )


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> SessionResponse:
    session_id, state, persisted = create_session(r=r, catalog=catalog, now=clock())
    return SessionResponse(
        session_id=session_id,
        state=state,
        snapshot=build_snapshot(state, catalog),
        persisted=persisted,
    )


@router.get("/sessions")
async def list_sessions_route(r: redis.Redis = Depends(get_redis)) -> dict[str, list[str]]:
    return {"sessions": [str(sid) for sid in list_session_ids(r=r)]}


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> SessionResponse:
    loaded = load_game_or_default(r=r, session_id=session_id, catalog=catalog, now=clock())
    if loaded.state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return SessionResponse(
        session_id=session_id,
        state=loaded.state,
        snapshot=build_snapshot(loaded.state, catalog),
        persisted=loaded.record_ok,
    )


async def _run_command(
    *,
    session_id: UUID,
    command: CommandName,
    payload: dict[str, Any],
    r: redis.Redis,
    catalog: ProducerCatalog,
    clock: Clock,
) -> CommandResponse:
    try:
        result = dispatch_command(
            r=r,
            session_id=session_id,
            catalog=catalog,
            command=command,
            payload=payload,
            now=clock(),
        )
    except SessionNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except SessionBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    if isinstance(result.outcome, UnknownProducer):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown producer: {result.outcome.producer_id}",
        )

    # Every tab ticks and autosaves on its own; only player actions are announced.
    if result.outcome.ok and command not in {"tick", "save"}:
        await hub.broadcast(
            str(session_id),
            {"type": "session_updated", "session_id": str(session_id), "command": command},
        )

    return CommandResponse(
        session_id=session_id,
        state=result.state,
        snapshot=build_snapshot(result.state, catalog),
        outcome=result.outcome,
        persisted=result.persisted,
    )


@router.post("/sessions/{session_id}/click", response_model=CommandResponse)
async def click_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> CommandResponse:
    return await _run_command(session_id=session_id, command="click", payload={}, r=r, catalog=catalog, clock=clock)


@router.post("/sessions/{session_id}/buy/{producer_id}", response_model=CommandResponse)
async def buy_route(
    session_id: UUID,
    producer_id: str,
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> CommandResponse:
    return await _run_command(
        session_id=session_id,
        command="buy",
        payload={"producer_id": producer_id},
        r=r,
        catalog=catalog,
        clock=clock,
    )


@router.post("/sessions/{session_id}/upgrade", response_model=CommandResponse)
async def upgrade_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> CommandResponse:
    return await _run_command(session_id=session_id, command="upgrade", payload={}, r=r, catalog=catalog, clock=clock)


@router.post("/sessions/{session_id}/tick", response_model=CommandResponse)
async def tick_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> CommandResponse:
    return await _run_command(session_id=session_id, command="tick", payload={}, r=r, catalog=catalog, clock=clock)


@router.post("/sessions/{session_id}/save", response_model=CommandResponse)
async def save_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> CommandResponse:
    return await _run_command(session_id=session_id, command="save", payload={}, r=r, catalog=catalog, clock=clock)


@router.post("/sessions/{session_id}/reset", response_model=CommandResponse)
async def reset_route(
    session_id: UUID,
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> CommandResponse:
    return await _run_command(session_id=session_id, command="reset", payload={}, r=r, catalog=catalog, clock=clock)


@router.post("/sessions/{session_id}/commands/{command}", response_model=CommandResponse)
async def generic_command_route(
    session_id: UUID,
    command: str,
    body: dict[str, Any] | None = Body(default=None),
    r: redis.Redis = Depends(get_redis),
    catalog: ProducerCatalog = Depends(get_producer_catalog),
    clock: Clock = Depends(get_clock),
) -> CommandResponse:
    return await _run_command(
        session_id=session_id,
        command=command,  # type: ignore[arg-type]
        payload=body or {},
        r=r,
        catalog=catalog,
        clock=clock,
    )
