"""Collapses duplicate same-day shifts on past and current dates."""

import re
from datetime import datetime
from typing import List, Optional

from .models import DraftShift
from .utils import resolve_now

LIKELY_ACTUAL_TIME_RE = re.compile(
    r'\b(clock|clocked|actual|time\s*in|time\s*out|clock\s*in|clock\s*out)\b',
    re.IGNORECASE,
)


def looks_like_actual_time(raw: str) -> bool:
    """True when the text reads like a clock-in/out record rather than a scheduled slot."""
    return bool(LIKELY_ACTUAL_TIME_RE.search(raw or ''))


class PastShiftDeduplicator:
    """
    Keeps one shift per date for today and earlier.

    Past rows often show both the scheduled time and the clocked time.
    The first shift of a date is kept unless it looks like a clocked time
    and a later one for the same date does not. Future dates keep every
    shift.
    """

    def dedupe(self, shifts: List[DraftShift], timezone: str, now: Optional[datetime] = None) -> List[DraftShift]:
        today = resolve_now(timezone, now).date().isoformat()

        kept: List[DraftShift] = []
        index_by_date = {}
        for shift in shifts:
            # ISO dates compare chronologically as strings
            if shift.date > today:
                kept.append(shift)
                continue

            existing_index = index_by_date.get(shift.date)
            if existing_index is None:
                index_by_date[shift.date] = len(kept)
                kept.append(shift)
                continue

            existing = kept[existing_index]
            if looks_like_actual_time(existing.raw) and not looks_like_actual_time(shift.raw):
                kept[existing_index] = shift

        return kept
