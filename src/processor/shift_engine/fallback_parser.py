"""Line-based shift parsing of whole-image OCR text."""

import re
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from .config import (
    FALLBACK_MERIDIEM_CONFIDENCE, FALLBACK_24H_CONFIDENCE, FALLBACK_AMBIGUOUS_CONFIDENCE,
    FALLBACK_DATED_LINE, FALLBACK_UNDATED_LINE, WEEKDAY_LOOKAHEAD_LINES, WORKING_TOKEN,
)
from .deduplicator import PastShiftDeduplicator
from .models import DraftShift, ParsedTime
from .utils import clamp01, date_from_week_start, format_iso_date, parse_month_token, parse_weekday, resolve_now

_MONTH_NAMES = (
    r'(jan|january|feb|february|mar|march|apr|april|may|jun|june|jul|july|aug|august|'
    r'sep|sept|september|oct|october|nov|november|dec|december)'
)

_ISO_RE = re.compile(r'\b(\d{4})-(\d{2})-(\d{2})\b')
_MDY_RE = re.compile(r'\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b')
_MONTH_DAY_RE = re.compile(rf'\b{_MONTH_NAMES}\b\s+(\d{{1,2}})\b', re.IGNORECASE)
_WEEK_RANGE_RE = re.compile(
    rf'\b{_MONTH_NAMES}\s+(\d{{1,2}}),\s*(20\d{{2}})\s*-\s*(?:{_MONTH_NAMES}\s+)?(\d{{1,2}}),\s*(20\d{{2}})\b',
    re.IGNORECASE,
)
_TIME_RANGE_RE = re.compile(
    r'(\d{1,2}(?::\d{2})?\s*(?:[ap]m|[ap])?)\s*(?:-|–|—|to)\s*(\d{1,2}(?::\d{2})?\s*(?:[ap]m|[ap])?)',
    re.IGNORECASE,
)
_TIME_RE = re.compile(r'^(\d{1,2})(?::?(\d{2}))?([ap]m|[ap])?$', re.IGNORECASE)
_WORKING_RE = re.compile(rf'\b{WORKING_TOKEN}\b', re.IGNORECASE)


@dataclass(frozen=True)
class WeekRange:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class FallbackLineParser:
    """
    Parses shifts from unstructured OCR text, one line at a time.

    Used when structured extraction finds no rows. A line yields a shift
    when it holds a time range and a date can be resolved for it: from a
    nearby weekday label inside the page's week range, from a date on the
    line, or from the last date seen on an earlier line.
    """

    def __init__(self, deduplicator: Optional[PastShiftDeduplicator] = None):
        self.deduplicator = deduplicator or PastShiftDeduplicator()

    def parse(
        self,
        text: str,
        timezone: str,
        source: str,
        now: Optional[datetime] = None,
    ) -> List[DraftShift]:
        """
        Parse draft shifts from whole-image OCR text.

        Args:
            text: OCR text of the full screenshot
            timezone: IANA timezone stamped on every shift
            source: Batch identifier stamped on every shift
            now: Override for the current time (default year, dedup cutoff)

        Returns:
            Shifts in line order, with past/today duplicates collapsed
        """
        now = resolve_now(timezone, now)
        normalized = normalize_ocr_text(text)
        # parse the normalized text, but keep each line as read for `raw`
        lines, raw_lines = [], []
        for raw_line in re.split(r'\r?\n', text or ''):
            line = normalize_ocr_text(raw_line).strip()
            if line:
                lines.append(line)
                raw_lines.append(raw_line.strip())

        week_range = parse_week_range(normalized)

        current_date = None
        shifts = []
        for i, line in enumerate(lines):
            line_date = parse_date_from_line(line, now.year)
            if line_date:
                current_date = line_date

            match = _TIME_RANGE_RE.search(line)
            if not match:
                continue

            start = parse_time(match.group(1))
            end = parse_time(match.group(2))
            if start is None or end is None:
                continue

            shift_date = None
            if week_range is not None:
                shift_date = self._date_from_weekday(lines, i, week_range)
            shift_date = shift_date or line_date or current_date
            if not shift_date:
                continue

            line_weight = FALLBACK_DATED_LINE if line_date else FALLBACK_UNDATED_LINE
            shifts.append(DraftShift(
                id=uuid.uuid4().hex,
                date=shift_date,
                start_time=start.hhmm,
                end_time=end.hhmm,
                timezone=timezone,
                source=source,
                confidence=clamp01(line_weight * start.confidence * end.confidence),
                raw=raw_lines[i],
            ))

        return self.deduplicator.dedupe(shifts, timezone, now)

    @staticmethod
    def _date_from_weekday(lines: List[str], index: int, week_range: WeekRange) -> Optional[str]:
        """Resolve a date from the weekday label on this line or the next few."""
        weekday = None
        for j in range(index, min(len(lines), index + WEEKDAY_LOOKAHEAD_LINES + 1)):
            candidate = lines[j]
            # the next scheduled row starts here
            if j != index and _WORKING_RE.search(candidate) and _TIME_RANGE_RE.search(candidate):
                break
            weekday = parse_weekday(candidate)
            if weekday is not None:
                break

        if weekday is None:
            return None
        day = date_from_week_start(week_range.start, weekday)
        return day.isoformat() if week_range.contains(day) else None


def normalize_ocr_text(text: str) -> str:
    return (text or '').replace('O', '0').replace('l', '1').replace('\u00a0', ' ')


def parse_time(raw: str) -> Optional[ParsedTime]:
    """
    Parse a loosely formatted time: "9", "9:30", "930", "9am", "17:00".

    Times without am/pm are ambiguous unless the hour only exists on a
    24-hour clock (0 or 13-23), which is reflected in the confidence.
    """
    cleaned = (raw or '').strip().lower().replace(' ', '')
    match = _TIME_RE.match(cleaned)
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    meridiem = match.group(3)

    if hours > 23 or minutes > 59:
        return None

    if meridiem:
        if hours < 1 or hours > 12:
            return None
        hh = hours % 12
        if meridiem.startswith('p'):
            hh += 12
        return ParsedTime(f"{hh:02d}:{minutes:02d}", FALLBACK_MERIDIEM_CONFIDENCE)

    confidence = FALLBACK_24H_CONFIDENCE if hours > 12 or hours == 0 else FALLBACK_AMBIGUOUS_CONFIDENCE
    return ParsedTime(f"{hours:02d}:{minutes:02d}", confidence)


def parse_date_from_line(line: str, default_year: int) -> Optional[str]:
    """
    Find an explicit date on a line.

    Accepts ISO dates, M/D with optional 2- or 4-digit year, and
    "<Month> <Day>". Missing years default to `default_year`.

    Returns:
        YYYY-MM-DD, or None if no valid date is present
    """
    trimmed = line.strip()

    iso = _ISO_RE.search(trimmed)
    if iso:
        return format_iso_date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))

    mdy = _MDY_RE.search(trimmed)
    if mdy:
        month, day = int(mdy.group(1)), int(mdy.group(2))
        year_raw = mdy.group(3)
        if year_raw:
            year = 2000 + int(year_raw) if len(year_raw) == 2 else int(year_raw)
        else:
            year = default_year
        return format_iso_date(year, month, day)

    month_day = _MONTH_DAY_RE.search(trimmed)
    if month_day:
        month = parse_month_token(month_day.group(1))
        if month is None:
            return None
        return format_iso_date(default_year, month, int(month_day.group(2)))

    return None


def parse_week_range(text: str) -> Optional[WeekRange]:
    """
    Find "<Month> D, YYYY - [<Month> ]D, YYYY" anywhere in the text.

    Returns:
        WeekRange, or None if absent or not a real pair of dates
    """
    match = _WEEK_RANGE_RE.search((text or '').replace('\n', ' '))
    if not match:
        return None

    start_month = parse_month_token(match.group(1))
    end_month = parse_month_token(match.group(4) or match.group(1))
    if start_month is None or end_month is None:
        return None

    try:
        start = date(int(match.group(3)), start_month, int(match.group(2)))
        end = date(int(match.group(6)), end_month, int(match.group(5)))
    except ValueError:
        return None
    return WeekRange(start=start, end=end)
