from __future__ import annotations

from catclicker.api.models import GameSnapshot, GameState, ProducerRow
from catclicker.catalog.registry import ProducerCatalog
from catclicker.core.formatting import format_number
from catclicker.core.rules import click_upgrade_cost, passive_rate, producer_cost


def _producer_rows(*, state: GameState, catalog: ProducerCatalog) -> list[ProducerRow]:
    rows: list[ProducerRow] = []
    for p in catalog:
        owned = state.producer_owned.get(p.id, 0)
        price = producer_cost(p, owned)
        rows.append(
            ProducerRow(
                id=p.id,
                name=p.name,
                description=p.description,
                emoji=p.emoji,
                base_rate=p.base_rate,
                owned=owned,
                price=price,
                price_display=format_number(price),
                affordable=state.points >= price,
            )
        )
    return rows


def build_snapshot(state: GameState, catalog: ProducerCatalog) -> GameSnapshot:
    """Display-ready view of a state, in catalog (shop) order."""

    rate = passive_rate(state, catalog)
    upgrade_price = click_upgrade_cost(state.click_power)
    return GameSnapshot(
        points=state.points,
        points_display=format_number(state.points),
        rate=rate,
        rate_display=format_number(rate),
        click_power=state.click_power,
        click_upgrade_price=upgrade_price,
        click_upgrade_price_display=format_number(upgrade_price),
        click_upgrade_affordable=state.points >= upgrade_price,
        producers=_producer_rows(state=state, catalog=catalog),
    )
