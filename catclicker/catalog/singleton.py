from __future__ import annotations

from pathlib import Path

from catclicker.catalog.registry import ProducerCatalog, load_producer_catalog


_CATALOG: ProducerCatalog | None = None


def init_catalog(*, project_root: Path) -> ProducerCatalog:
    """Load the producer catalog once and cache it.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _CATALOG
    if _CATALOG is None:
        _CATALOG = load_producer_catalog(root=project_root)
    return _CATALOG


def reset_catalog_for_tests() -> None:
    global _CATALOG
    _CATALOG = None


def get_catalog() -> ProducerCatalog:
    if _CATALOG is None:
        raise RuntimeError("Producer catalog not initialized. Call init_catalog() at startup.")
    return _CATALOG
