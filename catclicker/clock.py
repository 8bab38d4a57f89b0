from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> int: ...


def now_ms() -> int:
    """Wall-clock milliseconds since epoch."""

    return int(time.time() * 1000)
