from __future__ import annotations

import math

SUFFIXES: tuple[str, ...] = ("K", "M", "B", "T", "Qa", "Qi")


def _trim(mantissa: float) -> str:
    text = f"{round(mantissa, 2):.2f}"
    return text.rstrip("0").rstrip(".")


def format_number(value: float) -> str:
    """Compact display string: 999 -> "999", 1234 -> "1.23K", 1_500_000 -> "1.5M".

    Past the last suffix the mantissa keeps growing ("1000Qi" and up).
    """

    if value < 0:
        raise ValueError("format_number expects a non-negative value")
    if value < 1000:
        return str(math.floor(value))

    mantissa = float(value)
    idx = -1
    while mantissa >= 1000 and idx < len(SUFFIXES) - 1:
        mantissa /= 1000
        idx += 1
    return f"{_trim(mantissa)}{SUFFIXES[idx]}"
