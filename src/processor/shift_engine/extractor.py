"""Structured extraction of shifts from a weekly schedule list screenshot."""

import json
import uuid
from datetime import datetime
from typing import Optional

from .config import (
    LIST_GAP, LIST_BOTTOM, RIGHT_COLUMN_LEFT, RIGHT_COLUMN_WIDTH,
    RIGHT_COLUMN_WHITELIST, PSM_SINGLE_COLUMN, OCR_CONFIDENCE_FLOOR,
)
from .date_resolver import DateResolver
from .field_extractor import FieldExtractor
from .header_parser import HeaderParser
from .models import (
    DraftShift, ExtractionDebug, ExtractionResult, ImageLayers,
    Rect, RowDebugRecord,
)
from .ocr_engine import OCRSession
from .preprocessor import crop
from .row_detector import RowDetector
from .time_parser import TimeRangeParser
from .utils import clamp01, sanitize_text

MISSING_DATE = "missing date"
BAD_TIME = "bad scheduled time parse"


class WeeklyScheduleExtractor:
    """
    Layout-aware extraction: header, row detection, then per-row field OCR.

    Every OCR call goes through one `OCRSession`, one field at a time.
    """

    def __init__(
        self,
        session: OCRSession,
        header_parser: Optional[HeaderParser] = None,
        row_detector: Optional[RowDetector] = None,
        date_resolver: Optional[DateResolver] = None,
        time_parser: Optional[TimeRangeParser] = None,
    ):
        self.session = session
        self.header_parser = header_parser or HeaderParser()
        self.row_detector = row_detector or RowDetector()
        self.date_resolver = date_resolver or DateResolver()
        self.time_parser = time_parser or TimeRangeParser()
        self.field_extractor = FieldExtractor(session)

    def extract(
        self,
        layers: ImageLayers,
        timezone: str,
        source: str,
        now: Optional[datetime] = None,
    ) -> ExtractionResult:
        """
        Extract draft shifts from a preprocessed screenshot.

        Args:
            layers: Detection and text layers of the screenshot
            timezone: IANA timezone stamped on every shift
            source: Batch identifier stamped on every shift
            now: Override for the current time (year normalization)

        Returns:
            ExtractionResult with shifts sorted by date and start time,
            and a debug record accounting for every detected row
        """
        width, height = layers.width, layers.height
        if not width or not height:
            placeholder = Rect(0, 0, 1, 1)
            debug = ExtractionDebug(
                width=1, height=1,
                header_rect=placeholder, list_rect=placeholder, right_column_rect=placeholder,
            )
            return ExtractionResult(shifts=[], debug=debug, debug_text="Missing image dimensions")

        header_rect, header = self.header_parser.read(self.session, layers.text, timezone, now)

        list_top = header_rect.top + header_rect.height + round(height * LIST_GAP)
        list_bottom = round(height * LIST_BOTTOM)
        list_height = max(1, list_bottom - list_top)
        list_rect = Rect(0, list_top, width, list_height)
        list_detection = crop(layers.detection, list_rect)
        list_text = crop(layers.text, list_rect)

        right_rect = Rect(round(width * RIGHT_COLUMN_LEFT), 0, round(width * RIGHT_COLUMN_WIDTH), list_height)
        right_column = crop(list_detection, right_rect)
        right_ocr = self.session.recognize(right_column, PSM_SINGLE_COLUMN, RIGHT_COLUMN_WHITELIST)

        rows = self.row_detector.detect(right_ocr, right_column, list_height)
        typical_row = rows.typical_row_px

        debug = ExtractionDebug(
            width=width,
            height=height,
            header_rect=header_rect,
            list_rect=list_rect,
            right_column_rect=right_rect,
            header_text=header.text,
            header_year=header.year,
            header_month=header.month,
            header_confidence=header.confidence,
            right_column_text=right_ocr.text,
            word_count=rows.word_count,
            rows_detected=len(rows.centers),
            detection_method=rows.method,
            typical_row_px=typical_row,
        )
        debug_lines = [
            f"headerText={json.dumps(header.text)}",
            f"year={header.year} headerMonth={header.month if header.month is not None else '?'}",
            f"rowsDetected={len(rows.centers)} method={rows.method.value} wordCount={rows.word_count}",
        ]

        shifts = []
        for index, y in enumerate(rows.centers):
            fields = self.field_extractor.extract(list_text, y, typical_row, fallback_month=header.month)
            record = RowDebugRecord(
                index=index,
                y_center_px=y,
                band=fields.band,
                crops=fields.crops,
                day_text=fields.day_ocr.text,
                month_text=fields.month_ocr.text,
                weekday_text=fields.weekday_ocr.text,
                scheduled_text=fields.scheduled_ocr.text,
            )
            debug.rows.append(record)

            resolution = self.date_resolver.resolve(
                year=header.year,
                month=fields.month,
                day=fields.day,
                weekday=fields.weekday,
                week_start=header.week_start,
            )
            if not resolution.date:
                record.skipped_reason = MISSING_DATE
                debug_lines.append(
                    f"skipRow {MISSING_DATE} dayText={json.dumps(fields.day_ocr.text)} "
                    f"weekdayText={json.dumps(fields.weekday_ocr.text)} monthText={json.dumps(fields.month_ocr.text)}"
                )
                continue

            record.parsed_date = resolution.date
            time_range = self.time_parser.parse(fields.scheduled_ocr.text)
            if time_range is None:
                record.skipped_reason = BAD_TIME
                debug_lines.append(f"skipRow {BAD_TIME} timeText={json.dumps(fields.scheduled_ocr.text)}")
                continue

            record.parsed_start = time_range.start
            record.parsed_end = time_range.end

            confidence = clamp01(
                time_range.confidence
                * (OCR_CONFIDENCE_FLOOR + (1 - OCR_CONFIDENCE_FLOOR) * fields.scheduled_ocr.confidence)
            )
            shifts.append(DraftShift(
                id=uuid.uuid4().hex,
                date=resolution.date,
                start_time=time_range.start,
                end_time=time_range.end,
                timezone=timezone,
                source=source,
                confidence=confidence,
                raw=(
                    f"month={sanitize_text(fields.month_ocr.text)} day={sanitize_text(fields.day_ocr.text)} "
                    f"scheduled={sanitize_text(fields.scheduled_ocr.text)}"
                ),
            ))

        shifts.sort(key=lambda s: f"{s.date}T{s.start_time}")
        return ExtractionResult(shifts=shifts, debug=debug, debug_text='\n'.join(debug_lines))
