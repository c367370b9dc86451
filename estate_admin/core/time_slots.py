# ================================
# VISIT TIME SLOTS (core/time_slots.py)
# ================================

"""
Bookable visit slots.

Visits are booked on the hour between 09:00 and 18:00 (ten slots). Slots are
stored and compared as zero-padded ``HH:MM`` strings, so lexical order is
chronological order.
"""

from typing import Optional

from estate_admin.core.exceptions import InvalidSlotError

FIRST_SLOT_HOUR = 9
LAST_SLOT_HOUR = 18

TIME_SLOTS: tuple[str, ...] = tuple(
    f"{hour:02d}:00" for hour in range(FIRST_SLOT_HOUR, LAST_SLOT_HOUR + 1)
)

_SLOT_SET = frozenset(TIME_SLOTS)

def parse_time_slot(value: Optional[str]) -> str:
    """Normalizes ``value`` to a canonical slot or raises InvalidSlotError.
    
    Accepts ``HH:MM`` and ``HH:MM:SS`` (seconds must be zero).
    """
    if value is None or not value.strip():
        raise InvalidSlotError("Time slot is required")
    
    candidate = value.strip()
    if len(candidate) == 8 and candidate.endswith(":00"):
        candidate = candidate[:5]
    
    if candidate not in _SLOT_SET:
        raise InvalidSlotError(f"Invalid time slot '{value}'")
    
    return candidate
