"""Data models for schedule screenshot shift extraction."""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional

import numpy as np


class Weekday(Enum):
    """Enumeration for days of the week."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_string(cls, day_str: str) -> Optional['Weekday']:
        """
        Parse weekday from various string formats.

        Args:
            day_str: String representation of weekday (e.g., "Mon", "Monday")

        Returns:
            Weekday enum or None if not matched
        """
        if not day_str or not isinstance(day_str, str):
            return None

        day_str = day_str.strip().upper()

        if not day_str:
            return None

        day_mapping = {
            'MON': cls.MONDAY, 'MONDAY': cls.MONDAY,
            'TUE': cls.TUESDAY, 'TUES': cls.TUESDAY, 'TUESDAY': cls.TUESDAY,
            'WED': cls.WEDNESDAY, 'WEDNESDAY': cls.WEDNESDAY,
            'THU': cls.THURSDAY, 'THUR': cls.THURSDAY, 'THURS': cls.THURSDAY, 'THURSDAY': cls.THURSDAY,
            'FRI': cls.FRIDAY, 'FRIDAY': cls.FRIDAY,
            'SAT': cls.SATURDAY, 'SATURDAY': cls.SATURDAY,
            'SUN': cls.SUNDAY, 'SUNDAY': cls.SUNDAY,
        }

        return day_mapping.get(day_str)

    @property
    def iso(self) -> int:
        """ISO weekday number (Monday=1 ... Sunday=7)."""
        return list(Weekday).index(self) + 1


class DetectionMethod(Enum):
    """Row detection strategy that produced the row centers."""
    WORDS = "words"
    PROJECTION = "projection"
    UNIFORM = "text"


@dataclass(frozen=True)
class Rect:
    """Crop rectangle in pixels."""
    left: int
    top: int
    width: int
    height: int

    def to_dict(self) -> dict:
        return {'left': self.left, 'top': self.top, 'width': self.width, 'height': self.height}


@dataclass(frozen=True)
class Band:
    """Vertical slice of the list region covering one schedule row."""
    top: int
    height: int

    def to_dict(self) -> dict:
        return {'top': self.top, 'height': self.height}


@dataclass(frozen=True)
class WeekStart:
    """First calendar day of the displayed week."""
    year: int
    month: int
    day: int

    def to_date(self) -> Optional[date]:
        try:
            return date(self.year, self.month, self.day)
        except ValueError:
            return None


@dataclass(frozen=True)
class BoundingBox:
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def center_y(self) -> float:
        return (self.y0 + self.y1) / 2


@dataclass(frozen=True)
class OCRWord:
    text: str
    bbox: BoundingBox
    confidence: float = 0.0


@dataclass
class OCRResult:
    """
    Recognition output of one OCR call.

    `confidence` is normalized to 0-1. Engines report 0-100 and the raw
    shape is coerced once in `from_raw`.
    """
    text: str = ""
    confidence: float = 0.0
    words: list[OCRWord] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw) -> 'OCRResult':
        """
        Build a result from an engine's raw output.

        Args:
            raw: OCRResult, or mapping with 'text', 'confidence' (0-100) and
                'words' entries of {'text', 'bbox': {x0, y0, x1, y1}, 'confidence'}

        Returns:
            OCRResult with stripped text and confidence clamped to 0-1
        """
        if isinstance(raw, OCRResult):
            if 0.0 <= raw.confidence <= 1.0:
                return raw
            return replace(raw, confidence=max(0.0, min(1.0, raw.confidence)))
        if not isinstance(raw, dict):
            return cls()

        text = raw.get('text') or ''
        if not isinstance(text, str):
            text = str(text)

        confidence = raw.get('confidence')
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = 0.0

        words = []
        for item in raw.get('words') or []:
            if isinstance(item, OCRWord):
                words.append(item)
                continue
            if not isinstance(item, dict):
                continue
            bbox = item.get('bbox')
            try:
                box = BoundingBox(
                    float(bbox['x0']), float(bbox['y0']),
                    float(bbox['x1']), float(bbox['y1']),
                )
            except (KeyError, TypeError, ValueError):
                continue
            word_conf = item.get('confidence', 0.0)
            if not isinstance(word_conf, (int, float)):
                word_conf = 0.0
            words.append(OCRWord(text=str(item.get('text', '')), bbox=box, confidence=float(word_conf)))

        return cls(
            text=text.strip(),
            confidence=max(0.0, min(1.0, float(confidence) / 100)),
            words=words,
        )


@dataclass
class ImageLayers:
    """Detection (binarized) and text (sharpened) renditions of one screenshot."""
    detection: np.ndarray
    text: np.ndarray

    @property
    def width(self) -> int:
        return int(self.detection.shape[1]) if self.detection.ndim >= 2 else 0

    @property
    def height(self) -> int:
        return int(self.detection.shape[0]) if self.detection.ndim >= 2 else 0


@dataclass(frozen=True)
class ParsedTime:
    hhmm: str
    confidence: float


@dataclass(frozen=True)
class TimeRange:
    start: str
    end: str
    confidence: float


@dataclass
class DraftShift:
    """One candidate shift awaiting human review."""
    id: str
    date: str
    start_time: str
    end_time: str
    timezone: str
    source: str
    confidence: float
    raw: str

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'date': self.date,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'timezone': self.timezone,
            'source': self.source,
            'confidence': self.confidence,
            'raw': self.raw,
        }

    def __str__(self) -> str:
        return f"{self.date} {self.start_time}-{self.end_time} ({self.confidence:.0%})"


@dataclass
class RowDebugRecord:
    """Diagnostic trace for a single detected row."""
    index: int
    y_center_px: float
    band: Band
    crops: dict[str, Rect]
    day_text: str = ""
    month_text: str = ""
    weekday_text: str = ""
    scheduled_text: str = ""
    parsed_date: Optional[str] = None
    parsed_start: Optional[str] = None
    parsed_end: Optional[str] = None
    skipped_reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            'index': self.index,
            'yCenterPx': self.y_center_px,
            'band': self.band.to_dict(),
            'crops': {name: rect.to_dict() for name, rect in self.crops.items()},
            'dayText': self.day_text,
            'monthText': self.month_text,
            'weekdayText': self.weekday_text,
            'scheduledText': self.scheduled_text,
        }
        optional = {
            'parsedDate': self.parsed_date,
            'parsedStart': self.parsed_start,
            'parsedEnd': self.parsed_end,
            'skippedReason': self.skipped_reason,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class ExtractionDebug:
    """Aggregate diagnostics for one structured extraction."""
    width: int
    height: int
    header_rect: Rect
    list_rect: Rect
    right_column_rect: Rect
    header_text: str = ""
    header_year: Optional[int] = None
    header_month: Optional[int] = None
    header_confidence: float = 0.0
    right_column_text: str = ""
    word_count: int = 0
    rows_detected: int = 0
    detection_method: DetectionMethod = DetectionMethod.UNIFORM
    typical_row_px: float = 0.0
    rows: list[RowDebugRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        header = {'text': self.header_text, 'confidence': self.header_confidence}
        if self.header_year is not None:
            header['year'] = self.header_year
        if self.header_month is not None:
            header['month'] = self.header_month
        return {
            'crops': {
                'header': self.header_rect.to_dict(),
                'list': self.list_rect.to_dict(),
                'rightColumn': self.right_column_rect.to_dict(),
            },
            'image': {'width': self.width, 'height': self.height},
            'header': header,
            'rightColumn': {
                'text': self.right_column_text,
                'wordCount': self.word_count,
                'rowsDetected': self.rows_detected,
                'detectionMethod': self.detection_method.value,
                'typicalRowPx': self.typical_row_px,
            },
            'rows': [row.to_dict() for row in self.rows],
        }


@dataclass
class ExtractionResult:
    shifts: list[DraftShift]
    debug: ExtractionDebug
    debug_text: str = ""


@dataclass
class OcrImageResult:
    """Outcome for one uploaded screenshot."""
    filename: str
    text: str
    shifts: list[DraftShift] = field(default_factory=list)
    mode: str = "structured"
    structured_debug: Optional[ExtractionDebug] = None
    fallback_text: Optional[str] = None

    def to_dict(self) -> dict:
        debug = {}
        if self.structured_debug is not None:
            debug['structured'] = self.structured_debug.to_dict()
        if self.fallback_text is not None:
            debug['fallbackText'] = self.fallback_text
        return {
            'filename': self.filename,
            'text': self.text,
            'shifts': [shift.to_dict() for shift in self.shifts],
            'mode': self.mode,
            'debug': debug,
        }


@dataclass
class OcrResponse:
    """Shifts extracted from a batch of screenshots."""
    batch_id: str
    timezone: str
    images: list[OcrImageResult] = field(default_factory=list)

    def all_shifts(self) -> list[DraftShift]:
        return [shift for image in self.images for shift in image.shifts]

    def to_dict(self) -> dict:
        return {
            'batchId': self.batch_id,
            'timezone': self.timezone,
            'images': [image.to_dict() for image in self.images],
        }

    def __len__(self) -> int:
        return len(self.images)
