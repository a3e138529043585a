"""Unit conversions shared by ingestion and comparison."""

import math
from typing import Optional

KW_TO_HP = 1.341


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity (2.5 -> 3)."""
    return math.floor(value + 0.5)


def kw_to_hp(kw: Optional[float]) -> Optional[int]:
    """Horsepower from kilowatts, e.g. 220 kW -> 295 hp."""
    if kw is None:
        return None
    return round_half_up(kw * KW_TO_HP)
