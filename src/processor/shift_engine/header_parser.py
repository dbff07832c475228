"""Week header parsing: year, month and week start date."""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import numpy as np

from .config import HEADER_TOP, HEADER_HEIGHT, HEADER_WHITELIST, PSM_SPARSE_TEXT
from .models import Rect, WeekStart
from .ocr_engine import OCRSession
from .preprocessor import crop
from .utils import parse_month_name, resolve_now

_YEAR_RE = re.compile(r'\b(20\d{2})\b')
_MONTH_RE = re.compile(r'\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\b', re.IGNORECASE)
_WEEK_START_RE = re.compile(r'\b([A-Za-z]{3,})\s+(\d{1,2}),?\s*(20\d{2})\b')


@dataclass
class HeaderInfo:
    """Resolved header values for one screenshot."""
    text: str
    confidence: float
    year: int
    month: Optional[int]
    week_start: Optional[WeekStart]


class HeaderParser:
    """Reads the week range band at the top of the schedule list."""

    def header_rect(self, width: int, height: int) -> Rect:
        return Rect(0, round(height * HEADER_TOP), width, round(height * HEADER_HEIGHT))

    def read(
        self,
        session: OCRSession,
        image: np.ndarray,
        timezone: str,
        now: Optional[datetime] = None,
    ) -> tuple[Rect, HeaderInfo]:
        """
        OCR the header band of the text layer and parse it.

        Args:
            session: OCR session to recognize with
            image: Text layer of the screenshot
            timezone: Caller's timezone, used for year normalization
            now: Override for the current time

        Returns:
            The header crop rectangle and the parsed header
        """
        height, width = image.shape[:2]
        rect = self.header_rect(width, height)
        result = session.recognize(crop(image, rect), PSM_SPARSE_TEXT, HEADER_WHITELIST)
        return rect, self.parse(result.text, result.confidence, timezone, now)

    def parse(
        self,
        text: str,
        confidence: float,
        timezone: str,
        now: Optional[datetime] = None,
    ) -> HeaderInfo:
        now_year = resolve_now(timezone, now).year

        raw_year = parse_year(text)
        raw_week_start = parse_week_start(text)

        if raw_year is not None:
            year = normalize_year(raw_year, now_year)
        elif raw_week_start is not None:
            year = normalize_year(raw_week_start.year, now_year)
        else:
            year = now_year

        week_start = None
        if raw_week_start is not None:
            week_start = WeekStart(
                year=normalize_year(raw_week_start.year, now_year),
                month=raw_week_start.month,
                day=raw_week_start.day,
            )

        month = parse_header_month(text)
        if month is None and week_start is not None:
            month = week_start.month

        return HeaderInfo(text=text, confidence=confidence, year=year, month=month, week_start=week_start)


def parse_year(text: str) -> Optional[int]:
    match = _YEAR_RE.search(text or '')
    return int(match.group(1)) if match else None


def parse_header_month(text: str) -> Optional[int]:
    match = _MONTH_RE.search(text or '')
    return parse_month_name(match.group(1)) if match else None


def parse_week_start(text: str) -> Optional[WeekStart]:
    """
    Parse "<Month> <Day>, <Year>" from header text.

    Args:
        text: Header OCR text, e.g. "August 11, 2025 - August 17, 2025"

    Returns:
        WeekStart of the first match, or None
    """
    match = _WEEK_START_RE.search(text or '')
    if not match:
        return None
    month = parse_month_name(match.group(1))
    day = int(match.group(2))
    if not month or day < 1 or day > 31:
        return None
    return WeekStart(year=int(match.group(3)), month=month, day=day)


def normalize_year(raw_year: int, now_year: int) -> int:
    """
    Replace implausible years with the current one.

    Schedules are current or near-future, so a year more than one off
    from now (e.g. 2076 read for 2026) is an OCR error.
    """
    if raw_year < now_year - 1 or raw_year > now_year + 1:
        return now_year
    return raw_year
