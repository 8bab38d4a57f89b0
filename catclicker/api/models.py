from __future__ import annotations

from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, Field, NonNegativeInt


class GameState(BaseModel):
    """Persisted per-session record.

    All four fields are mandatory when reading a stored record; a record missing any
    of them fails validation and is treated as unreadable by the game store.
    """

    points: float = Field(..., ge=0)
    click_power: int = Field(..., ge=1)

    # Exactly one entry per catalog producer (see core.rules.normalize_state).
    producer_owned: dict[str, NonNegativeInt]

    # Milliseconds since epoch of the last applied accrual.
    last_update: int


class ProducerInfo(BaseModel):
    id: str
    name: str
    description: str
    base_cost: float
    base_rate: float
    emoji: str = ""


class ProducerListResponse(BaseModel):
    producers: list[ProducerInfo]


# ---- command outcomes ----


class Clicked(BaseModel):
    kind: Literal["clicked"] = "clicked"
    ok: Literal[True] = True
    granted: int


class Purchased(BaseModel):
    kind: Literal["purchased"] = "purchased"
    ok: Literal[True] = True
    producer_id: str
    owned: int
    price: int
    next_price: int


class ClickPowerUpgraded(BaseModel):
    kind: Literal["click_power_upgraded"] = "click_power_upgraded"
    ok: Literal[True] = True
    click_power: int
    price: int
    next_price: int


class Ticked(BaseModel):
    kind: Literal["ticked"] = "ticked"
    ok: Literal[True] = True
    gain: float
    elapsed_seconds: float


class Saved(BaseModel):
    kind: Literal["saved"] = "saved"
    ok: Literal[True] = True


class ResetDone(BaseModel):
    kind: Literal["reset"] = "reset"
    ok: Literal[True] = True


class InsufficientFunds(BaseModel):
    """Expected, user-facing rejection. The state is left untouched."""

    kind: Literal["insufficient_funds"] = "insufficient_funds"
    ok: Literal[False] = False
    price: int
    points: float


class UnknownProducer(BaseModel):
    kind: Literal["unknown_producer"] = "unknown_producer"
    ok: Literal[False] = False
    producer_id: str


CommandOutcome = Annotated[
    Clicked | Purchased | ClickPowerUpgraded | Ticked | Saved | ResetDone | InsufficientFunds | UnknownProducer,
    Field(discriminator="kind"),
]


# ---- display snapshot ----


class ProducerRow(BaseModel):
    id: str
    name: str
    description: str
    emoji: str
    base_rate: float
    owned: int
    price: int
    price_display: str
    affordable: bool


class GameSnapshot(BaseModel):
    points: float
    points_display: str
    rate: float
    rate_display: str
    click_power: int
    click_upgrade_price: int
    click_upgrade_price_display: str
    click_upgrade_affordable: bool
    producers: list[ProducerRow]


# ---- API envelopes ----


class SessionResponse(BaseModel):
    session_id: UUID
    state: GameState
    snapshot: GameSnapshot
    # False when the store could not be reached; the game continues in memory.
    persisted: bool = True


class CommandResponse(SessionResponse):
    outcome: CommandOutcome
