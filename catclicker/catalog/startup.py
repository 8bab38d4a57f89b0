from __future__ import annotations

import os
from pathlib import Path

from catclicker.catalog.singleton import init_catalog


def init_catalog_for_app() -> None:
    # CATCLICKER_ASSETS_DIR points at a directory containing assets/producers.csv.
    override = os.environ.get("CATCLICKER_ASSETS_DIR")
    if override:
        init_catalog(project_root=Path(override).resolve())
        return

    # project root is two levels up from this file: catclicker/catalog/startup.py
    project_root = Path(__file__).resolve().parents[2]
    init_catalog(project_root=project_root)
