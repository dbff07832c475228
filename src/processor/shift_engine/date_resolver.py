"""Reconciles day-number and weekday-label date candidates for a row."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from .models import WeekStart, Weekday
from .utils import date_from_week_start, format_iso_date


@dataclass(frozen=True)
class DateResolution:
    date: Optional[str]
    from_day_month: Optional[str]
    from_weekday: Optional[str]
    overridden: bool = False


class DateResolver:
    """
    Picks a row date from two independent candidates.

    The day+month+year candidate wins unless a weekday+week-start
    candidate also exists and contradicts it (wrong weekday, or outside
    the displayed week). In a conflict the weekday label is trusted over
    the day digits.
    """

    def resolve(
        self,
        year: int,
        month: Optional[int],
        day: Optional[int],
        weekday: Optional[Weekday],
        week_start: Optional[WeekStart],
    ) -> DateResolution:
        from_day_month = None
        if day is not None and month is not None:
            from_day_month = format_iso_date(year, month, day)

        base = week_start.to_date() if week_start is not None else None
        from_weekday = None
        if base is not None and weekday is not None:
            from_weekday = date_from_week_start(base, weekday).isoformat()

        if from_day_month and from_weekday:
            candidate = date.fromisoformat(from_day_month)
            weekday_ok = candidate.isoweekday() == weekday.iso
            in_week = base <= candidate <= base + timedelta(days=6)
            if not weekday_ok or not in_week:
                return DateResolution(from_weekday, from_day_month, from_weekday, overridden=True)

        return DateResolution(from_day_month or from_weekday, from_day_month, from_weekday)
