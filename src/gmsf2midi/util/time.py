from __future__ import annotations

from ..timeline import DEFAULT_TICKS_PER_UNIT

def units_to_ticks(units: int, ticks_per_unit: int) -> int:
    if ticks_per_unit <= 0:
        ticks_per_unit = DEFAULT_TICKS_PER_UNIT
    return int(units) * int(ticks_per_unit)
