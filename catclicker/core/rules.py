"""Game state rules.

Every command mutates the passed `GameState` in place and returns an outcome model.
Commands never raise for a well-formed state; rejections (unknown producer, not enough
points) are returned as outcomes with `ok=False` and leave the state untouched.

Passive accrual and manual clicks are independent: `click` never moves `last_update`,
so a click followed by a tick neither loses nor double-counts passive income.
"""

from __future__ import annotations

import math

from catclicker.api.models import (
    ClickPowerUpgraded,
    Clicked,
    GameState,
    InsufficientFunds,
    Purchased,
    Ticked,
    UnknownProducer,
)
from catclicker.catalog.registry import ProducerCatalog, ProducerDefinition

COST_GROWTH = 1.15
CLICK_UPGRADE_BASE_COST = 50


def producer_cost(defn: ProducerDefinition, owned: int) -> int:
    return math.floor(defn.base_cost * COST_GROWTH**owned)


def click_upgrade_cost(click_power: int) -> int:
    return math.floor(CLICK_UPGRADE_BASE_COST * 2 ** (click_power - 1))


def passive_rate(state: GameState, catalog: ProducerCatalog) -> float:
    """Points per second produced by everything the state owns."""

    return sum((p.base_rate * state.producer_owned.get(p.id, 0) for p in catalog), 0.0)


def default_state(catalog: ProducerCatalog, *, now: int) -> GameState:
    return GameState(
        points=0.0,
        click_power=1,
        producer_owned={pid: 0 for pid in catalog.ids},
        last_update=now,
    )


def normalize_state(state: GameState, catalog: ProducerCatalog) -> GameState:
    """Make a freshly loaded record consistent with the current catalog.

    If the stored producer ids differ from the catalog ids (producers added, removed or
    renamed since the record was written), the owned counts are reset to zero.
    """

    if set(state.producer_owned) != set(catalog.ids):
        state.producer_owned = {pid: 0 for pid in catalog.ids}
    else:
        state.producer_owned = {pid: state.producer_owned[pid] for pid in catalog.ids}
    return state


def tick(state: GameState, catalog: ProducerCatalog, *, now: int) -> Ticked:
    # Negative deltas (clock skew) accrue nothing and leave last_update where it is.
    dt = max(0.0, (now - state.last_update) / 1000)
    gain = passive_rate(state, catalog) * dt
    state.points += gain
    state.last_update = max(state.last_update, now)
    return Ticked(gain=gain, elapsed_seconds=dt)


def click(state: GameState) -> Clicked:
    state.points += state.click_power
    return Clicked(granted=state.click_power)


def buy(state: GameState, catalog: ProducerCatalog, producer_id: str) -> Purchased | InsufficientFunds | UnknownProducer:
    defn = catalog.get(producer_id)
    if defn is None:
        return UnknownProducer(producer_id=producer_id)

    owned = state.producer_owned.get(producer_id, 0)
    price = producer_cost(defn, owned)
    if state.points < price:
        return InsufficientFunds(price=price, points=state.points)

    state.points -= price
    state.producer_owned[producer_id] = owned + 1
    return Purchased(
        producer_id=producer_id,
        owned=owned + 1,
        price=price,
        next_price=producer_cost(defn, owned + 1),
    )


def upgrade_click_power(state: GameState) -> ClickPowerUpgraded | InsufficientFunds:
    price = click_upgrade_cost(state.click_power)
    if state.points < price:
        return InsufficientFunds(price=price, points=state.points)

    state.points -= price
    state.click_power += 1
    return ClickPowerUpgraded(
        click_power=state.click_power,
        price=price,
        next_price=click_upgrade_cost(state.click_power),
    )


def reset(catalog: ProducerCatalog, *, now: int) -> GameState:
    return default_state(catalog, now=now)
