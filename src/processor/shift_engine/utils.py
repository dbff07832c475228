"""Validation and shared text/date helpers for shift extraction."""

import re
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import SUPPORTED_EXTENSIONS, LOW_CONFIDENCE, WORKING_TOKEN
from .models import DraftShift, Weekday


class ValidationError(ValueError):
    """Custom exception for validation errors."""
    pass


MONTH_ABBREVIATIONS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

_WEEKDAY_RE = re.compile(r'\b(sunday|monday|tuesday|wednesday|thursday|friday|saturday)\b', re.IGNORECASE)
_ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_HHMM_RE = re.compile(r'^\d{2}:\d{2}$')


def is_supported_file(file_path: str) -> bool:
    """Quick check if file extension is supported."""
    return Path(file_path).suffix.lower() in SUPPORTED_EXTENSIONS


def sanitize_text(text: str) -> str:
    """
    Collapse whitespace and drop NUL characters from OCR text.

    Args:
        text: Text to sanitize

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = re.sub(r'\s+', ' ', text)
    text = text.replace('\x00', '')
    return text.strip()


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def median(values: List[float]) -> Optional[float]:
    ordered = sorted(values)
    if not ordered:
        return None
    mid = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def normalize_working_token(value: str) -> str:
    """Fold a right-column word so that OCR variants like "Work1ng" compare equal."""
    return re.sub(r'[^a-z0-9]', '', value.lower()).replace('1', 'i')


def looks_like_working(value: str) -> bool:
    return normalize_working_token(value) == WORKING_TOKEN


def count_working_tokens(text: str) -> int:
    return len(re.findall(rf'\b{WORKING_TOKEN}\b', text or '', flags=re.IGNORECASE))


def parse_month_name(value: str) -> Optional[int]:
    """
    Resolve an OCR'd month name to its number.

    Uses the first three letters: exact abbreviation lookup, then the
    common February misreads ("feh", "fah", ...), then a Hamming distance
    of at most 1 against every abbreviation.

    Args:
        value: Raw OCR text such as "Aug", "Augusl" or "Oec"

    Returns:
        Month number 1-12, or None if nothing is close enough
    """
    token = re.sub(r'[^a-z]', '', (value or '').strip().lower())[:3]
    if not token:
        return None

    direct = MONTH_ABBREVIATIONS.get(token)
    if direct:
        return direct

    if token.startswith('f') and len(token) > 1 and token[1] in ('e', 'a'):
        return 2

    best_key = None
    best_dist = None
    for key in MONTH_ABBREVIATIONS:
        dist = sum(1 for i in range(3) if (token[i] if i < len(token) else '') != key[i])
        if best_dist is None or dist < best_dist:
            best_key, best_dist = key, dist

    if best_dist is not None and best_dist <= 1:
        return MONTH_ABBREVIATIONS[best_key]
    return None


def parse_month_token(token: str) -> Optional[int]:
    """Exact (non-fuzzy) lookup of a month name by its first three letters."""
    return MONTH_ABBREVIATIONS.get((token or '').strip().lower()[:3])


def parse_weekday(text: str) -> Optional[Weekday]:
    """Find the first full English weekday name in text."""
    match = _WEEKDAY_RE.search(text or '')
    return Weekday.from_string(match.group(1)) if match else None


def date_from_week_start(week_start: date, weekday: Weekday) -> date:
    """Date of `weekday` within the seven days starting at `week_start`."""
    delta = (weekday.iso - week_start.isoweekday() + 7) % 7
    return week_start + timedelta(days=delta)


def get_zone(timezone: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone: {timezone}") from e


def resolve_now(timezone: str, now: Optional[datetime] = None) -> datetime:
    """
    Current moment in the extraction timezone.

    Args:
        timezone: IANA timezone name
        now: Override for "now"; naive values are taken as local to `timezone`

    Returns:
        Timezone-aware datetime
    """
    zone = get_zone(timezone)
    if now is None:
        return datetime.now(zone)
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now.astimezone(zone)


def format_iso_date(year: int, month: int, day: int) -> Optional[str]:
    """YYYY-MM-DD for a real calendar date, otherwise None."""
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def validate_shifts(shifts: List[DraftShift]) -> List[str]:
    """
    Validate extracted shifts and return warnings for the reviewer.

    Args:
        shifts: Shifts to validate

    Returns:
        List of validation warning messages
    """
    warnings = []

    if not shifts:
        warnings.append("No shifts were extracted")
        return warnings

    bad_dates = sum(1 for s in shifts if not _ISO_DATE_RE.match(s.date or ''))
    if bad_dates > 0:
        warnings.append(f"{bad_dates} shifts have a malformed date")

    bad_times = sum(
        1 for s in shifts
        if not _HHMM_RE.match(s.start_time or '') or not _HHMM_RE.match(s.end_time or '')
    )
    if bad_times > 0:
        warnings.append(f"{bad_times} shifts have a malformed start or end time")

    inverted = sum(
        1 for s in shifts
        if _HHMM_RE.match(s.start_time or '') and _HHMM_RE.match(s.end_time or '')
        and s.end_time <= s.start_time
    )
    if inverted > 0:
        warnings.append(f"{inverted} shifts end at or before their start time")

    low_confidence = sum(1 for s in shifts if s.confidence < LOW_CONFIDENCE)
    if low_confidence > 0:
        warnings.append(f"{low_confidence} shifts have low confidence (< 50%)")

    return warnings


def format_confidence_report(shifts: List[DraftShift]) -> str:
    """
    Generate a confidence report for extracted shifts.

    Args:
        shifts: Shifts to analyze

    Returns:
        Formatted report string
    """
    if not shifts:
        return "No shifts to analyze"

    scores = [s.confidence for s in shifts]

    avg_score = sum(scores) / len(scores)
    min_score = min(scores)
    max_score = max(scores)

    high_confidence = sum(1 for s in scores if s >= 0.8)
    medium_confidence = sum(1 for s in scores if 0.5 <= s < 0.8)
    low_confidence = sum(1 for s in scores if s < 0.5)

    report = f"""
Confidence Report:
  Average: {avg_score:.2%}
  Range: {min_score:.2%} - {max_score:.2%}

  Distribution:
    High (≥80%): {high_confidence} shifts
    Medium (50-80%): {medium_confidence} shifts
    Low (<50%): {low_confidence} shifts
"""

    return report.strip()
