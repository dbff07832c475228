"""Scheduled time range parsing for OCR'd "H:MM am - H:MM pm" text."""

import re
from typing import Optional

from .config import STRUCTURED_TIME_CONFIDENCE, TOKEN_PAIR_PENALTY
from .models import ParsedTime, TimeRange
from .utils import clamp01

_TIME_12H_RE = re.compile(r'^(\d{1,2}):(\d{2})([ap]m)$')
_RANGE_RE = re.compile(r'(\d{1,2}:\d{2})\s*(am|pm)\s*-\s*(\d{1,2}:\d{2})\s*(am|pm)')
_TOKEN_RE = re.compile(r'(\d{1,2}:\d{2})\s*(am|pm)\b')


class TimeRangeParser:
    """Turns a scheduled-time crop's text into a 24-hour start/end pair."""

    def parse(self, text: str) -> Optional[TimeRange]:
        """
        Parse a scheduled time range.

        Args:
            text: Raw OCR text, e.g. "1000 am - 6:00pm"

        Returns:
            TimeRange with HH:MM times, or None when no range is found
        """
        t = normalize_time_text(text)

        match = _RANGE_RE.search(t)
        if not match:
            return self._from_time_tokens(t)

        start = parse_time_to_24h(match.group(1) + match.group(2))
        end = parse_time_to_24h(match.group(3) + match.group(4))
        if start is None or end is None:
            return None
        return TimeRange(start.hhmm, end.hhmm, clamp01(start.confidence * end.confidence))

    @staticmethod
    def _from_time_tokens(t: str) -> Optional[TimeRange]:
        # no verified separator, so the first two times are only assumed to be a range
        tokens = _TOKEN_RE.findall(t)
        if len(tokens) < 2:
            return None
        start = parse_time_to_24h(''.join(tokens[0]))
        end = parse_time_to_24h(''.join(tokens[1]))
        if start is None or end is None:
            return None
        return TimeRange(start.hhmm, end.hhmm, clamp01(start.confidence * end.confidence * TOKEN_PAIR_PENALTY))


def normalize_time_text(text: str) -> str:
    """Fix common OCR confusions in a time string and lowercase it."""
    t = (text or '').replace('–', '-').replace('—', '-')
    t = t.replace('O', '0').replace('l', '1').replace('I', '1')
    t = re.sub(r'(\d)o(?=:\d{2})', r'\g<1>0', t)
    t = re.sub(r'(^|\s)o(?=:\d{2})', r'\g<1>0', t)
    t = re.sub(r'\b(\d{1,2})(\d{2})\s*(am|pm)\b', r'\1:\2 \3', t, flags=re.IGNORECASE)
    t = re.sub(r'\b2m\b', 'am', t, flags=re.IGNORECASE)
    return re.sub(r'\s+', ' ', t.lower()).strip()


def parse_time_to_24h(raw: str) -> Optional[ParsedTime]:
    """
    Convert "H:MMam" / "H:MM pm" to 24-hour HH:MM.

    An hour of 0 is read as 10 (dropped leading "1").
    """
    cleaned = re.sub(r'\s+', '', (raw or '').strip().lower())
    match = _TIME_12H_RE.match(cleaned)
    if not match:
        return None

    hours12 = int(match.group(1))
    minutes = int(match.group(2))
    if minutes > 59:
        return None

    if hours12 == 0:
        hours12 = 10
    if hours12 < 1 or hours12 > 12:
        return None

    hh = hours12 % 12
    if match.group(3) == 'pm':
        hh += 12
    return ParsedTime(f"{hh:02d}:{minutes:02d}", STRUCTURED_TIME_CONFIDENCE)
