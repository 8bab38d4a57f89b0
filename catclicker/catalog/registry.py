from __future__ import annotations

import csv
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


def _slug_id(s: str) -> str:
    s = s.strip().casefold()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return s.strip("-")


@dataclass(frozen=True, slots=True)
class ProducerDefinition:
    """A purchasable producer kind. Static for the lifetime of the process."""

    id: str
    name: str
    description: str
    base_cost: float
    base_rate: float
    emoji: str = ""


@dataclass(frozen=True, slots=True)
class ProducerCatalog:
    """Ordered producer definitions.

    Order is the display/shop order; ids are canonical (for persistence/network).
    """

    producers: tuple[ProducerDefinition, ...]
    _by_id: dict[str, ProducerDefinition]

    @staticmethod
    def from_rows(rows: list[ProducerDefinition]) -> "ProducerCatalog":
        if not rows:
            raise CatalogLoadError("Producer catalog is empty")

        by_id: dict[str, ProducerDefinition] = {}
        for p in rows:
            if p.id in by_id:
                raise CatalogLoadError(f"Duplicate producer id: {p.id}")
            if p.base_cost <= 0:
                raise CatalogLoadError(f"Producer {p.id}: base_cost must be > 0")
            if p.base_rate < 0:
                raise CatalogLoadError(f"Producer {p.id}: base_rate must be >= 0")
            by_id[p.id] = p
        return ProducerCatalog(producers=tuple(rows), _by_id=by_id)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self.producers)

    def get(self, id: str) -> ProducerDefinition | None:
        return self._by_id.get(id)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and item in self._by_id

    def __iter__(self):
        return iter(self.producers)

    def __len__(self) -> int:
        return len(self.producers)


class CatalogLoadError(RuntimeError):
    pass


def _read_csv_rows(path: Path) -> list[list[str]]:
    try:
        raw = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as e:
        raise CatalogLoadError(f"Catalog file not found: {path}") from e

    reader = csv.reader(raw.splitlines())
    rows = [[c.strip() for c in row if c is not None] for row in reader]
    return [row for row in rows if any(cell.strip() for cell in row)]


def _parse_number(value: str, *, field: str, path: Path) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise CatalogLoadError(f"Invalid {field} {value!r} in {path}") from e


def load_producer_csv(path: Path) -> ProducerCatalog:
    rows = _read_csv_rows(path)
    if not rows:
        raise CatalogLoadError(f"Empty producer CSV: {path}")

    header = [c.casefold() for c in rows[0]]
    if header[:5] != ["id", "name", "description", "base_cost", "base_rate"]:
        raise CatalogLoadError(f"Unexpected header in {path}: {rows[0]}")

    out: list[ProducerDefinition] = []
    for row in rows[1:]:
        if len(row) < 5:
            continue
        rid, name, description = row[0], row[1], row[2]
        if not name:
            continue
        if not rid:
            rid = _slug_id(name)
        out.append(
            ProducerDefinition(
                id=rid,
                name=name,
                description=description,
                base_cost=_parse_number(row[3], field="base_cost", path=path),
                base_rate=_parse_number(row[4], field="base_rate", path=path),
                emoji=row[5] if len(row) > 5 else "",
            )
        )

    return ProducerCatalog.from_rows(out)


def reference_catalog() -> ProducerCatalog:
    """The four producers the game ships with.

    Used when `producers.csv` is missing and strict loading is off.
    """

    return ProducerCatalog.from_rows(
        [
            ProducerDefinition(id="autoPurr", name="Auto-Purr", description="Small auto purrs", base_cost=10, base_rate=0.1, emoji="😺"),
            ProducerDefinition(id="catnipFarm", name="Catnip Farm", description="Produces cat points", base_cost=120, base_rate=1, emoji="🌿"),
            ProducerDefinition(id="laserFactory", name="Laser Factory", description="Laser pointers", base_cost=1500, base_rate=12, emoji="🔦"),
            ProducerDefinition(id="meowTeam", name="Meow Team", description="Team of meowing cats", base_cost=10000, base_rate=80, emoji="🎤"),
        ]
    )


def load_producer_catalog(*, root: Path) -> ProducerCatalog:
    assets_dir = root / "assets"

    # Default behavior: fall back to the reference catalog when the CSV is missing or invalid.
    # You can force strict behavior by setting CATCLICKER_STRICT_ASSETS=1.
    strict = os.getenv("CATCLICKER_STRICT_ASSETS", "").strip().lower() in {"1", "true", "yes"}

    path = assets_dir / "producers.csv"
    try:
        catalog = load_producer_csv(path)
    except CatalogLoadError:
        if strict:
            raise
        logger.warning("Producer catalog unavailable at %s; using reference catalog", path)
        return reference_catalog()

    logger.info("Loaded %d producers from %s", len(catalog), path)
    return catalog
