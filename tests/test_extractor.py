import json
from datetime import datetime

import numpy as np
import pytest

from shift_engine.config import (
    DAY_WHITELIST, HEADER_WHITELIST, MONTH_WHITELIST, PSM_SINGLE_BLOCK,
    PSM_SINGLE_COLUMN, PSM_SINGLE_LINE, PSM_SPARSE_TEXT, RIGHT_COLUMN_WHITELIST,
    TIME_WHITELIST, WEEKDAY_WHITELIST,
)
from shift_engine.extractor import BAD_TIME, MISSING_DATE, WeeklyScheduleExtractor
from shift_engine.models import DetectionMethod, ImageLayers
from shift_engine.ocr_engine import OCRSession

from conftest import FakeEngine, word

TZ = "America/New_York"
NOW = datetime(2025, 8, 1)
HEADER = {'text': "August 11, 2025 - August 17, 2025", 'confidence': 90}


def _layers(width=800, height=1000):
    image = np.full((height, width), 255, dtype=np.uint8)
    return ImageLayers(detection=image, text=image.copy())


def _right_column(*centers):
    return {
        'text': "\n".join("Working" for _ in centers),
        'confidence': 92,
        'words': [word("Working", y - 10, y + 10) for y in centers],
    }


def _row(day, month, weekday, scheduled, scheduled_confidence=80):
    return [
        {'text': day, 'confidence': 90},
        {'text': month, 'confidence': 90},
        {'text': weekday, 'confidence': 90},
        {'text': scheduled, 'confidence': scheduled_confidence},
    ]


def test_rows_become_sorted_shifts():
    engine = FakeEngine([
        HEADER,
        _right_column(100, 240),
        *_row("15", "Aug", "Friday", "1000 am - 6:00pm", 100),
        *_row("13", "Aug", "Wednesday", "9:00am - 5:00pm", 80),
    ])

    result = WeeklyScheduleExtractor(OCRSession(engine)).extract(_layers(), TZ, "batch-9", NOW)

    assert [(s.date, s.start_time, s.end_time) for s in result.shifts] == [
        ("2025-08-13", "09:00", "17:00"),
        ("2025-08-15", "10:00", "18:00"),
    ]
    wednesday, friday = result.shifts
    assert wednesday.confidence == pytest.approx(0.98 * 0.98 * (0.35 + 0.65 * 0.8))
    assert friday.confidence == pytest.approx(0.98 * 0.98)
    assert wednesday.raw == "month=Aug day=13 scheduled=9:00am - 5:00pm"
    assert all(s.source == "batch-9" and s.timezone == TZ for s in result.shifts)

    debug = result.debug
    assert debug.detection_method is DetectionMethod.WORDS
    assert debug.rows_detected == 2
    assert debug.typical_row_px == 140
    assert debug.header_year == 2025
    assert debug.header_month == 8
    assert [row.parsed_date for row in debug.rows] == ["2025-08-15", "2025-08-13"]
    assert "method=words" in result.debug_text


def test_each_field_uses_its_own_parameters():
    engine = FakeEngine([HEADER, _right_column(100), *_row("13", "Aug", "Wednesday", "9:00am - 5:00pm")])
    WeeklyScheduleExtractor(OCRSession(engine)).extract(_layers(), TZ, "b", NOW)

    used = [(c['params']['tessedit_pageseg_mode'], c['params']['tessedit_char_whitelist']) for c in engine.calls]
    assert used == [
        (PSM_SPARSE_TEXT, HEADER_WHITELIST),
        (PSM_SINGLE_COLUMN, RIGHT_COLUMN_WHITELIST),
        (PSM_SINGLE_BLOCK, DAY_WHITELIST),
        (PSM_SINGLE_LINE, MONTH_WHITELIST),
        (PSM_SINGLE_LINE, WEEKDAY_WHITELIST),
        (PSM_SINGLE_LINE, TIME_WHITELIST),
    ]


def test_weekday_label_wins_over_misread_day():
    engine = FakeEngine([HEADER, _right_column(100), *_row("03", "Aug", "Friday", "9:00am - 5:00pm")])
    result = WeeklyScheduleExtractor(OCRSession(engine)).extract(_layers(), TZ, "b", NOW)

    assert [s.date for s in result.shifts] == ["2025-08-15"]


def test_unusable_rows_are_recorded_not_dropped():
    engine = FakeEngine([
        {'text': "", 'confidence': 0},
        _right_column(100, 240),
        *_row("", "", "", "9:00am - 5:00pm"),
        *_row("13", "Aug", "", "Working"),
    ])
    result = WeeklyScheduleExtractor(OCRSession(engine)).extract(_layers(), TZ, "b", NOW)

    assert result.shifts == []
    assert [row.skipped_reason for row in result.debug.rows] == [MISSING_DATE, BAD_TIME]
    assert result.debug.rows[1].parsed_date == "2025-08-13"
    assert f"skipRow {MISSING_DATE}" in result.debug_text
    assert f"skipRow {BAD_TIME}" in result.debug_text


def test_missing_dimensions():
    engine = FakeEngine()
    empty = np.zeros((0, 0), dtype=np.uint8)
    result = WeeklyScheduleExtractor(OCRSession(engine)).extract(ImageLayers(empty, empty), TZ, "b", NOW)

    assert result.shifts == []
    assert result.debug_text == "Missing image dimensions"
    assert result.debug.header_rect.to_dict() == {'left': 0, 'top': 0, 'width': 1, 'height': 1}
    assert engine.calls == []


def test_debug_serializes_to_json():
    engine = FakeEngine([HEADER, _right_column(100), *_row("13", "Aug", "Wednesday", "9:00am - 5:00pm")])
    result = WeeklyScheduleExtractor(OCRSession(engine)).extract(_layers(), TZ, "b", NOW)

    data = json.loads(json.dumps(result.debug.to_dict()))
    assert data['image'] == {'width': 800, 'height': 1000}
    assert data['header'] == {'text': HEADER['text'], 'confidence': 0.9, 'year': 2025, 'month': 8}
    assert data['rightColumn']['detectionMethod'] == "words"
    row = data['rows'][0]
    assert row['parsedDate'] == "2025-08-13"
    assert row['parsedStart'] == "09:00"
    assert 'skippedReason' not in row
    assert set(row['crops']) == {'day', 'month', 'weekday', 'scheduled'}


def test_field_crops_are_enhanced_except_month():
    engine = FakeEngine([HEADER, _right_column(100), *_row("13", "Aug", "Wednesday", "9:00am - 5:00pm")])
    WeeklyScheduleExtractor(OCRSession(engine)).extract(_layers(), TZ, "b", NOW)

    day, month, weekday, scheduled = (call['shape'] for call in engine.calls[2:6])
    assert day[1] == 900
    assert weekday[1] == 900
    assert scheduled[1] == 1200
    # band of 134px at 800px width, month crop read at its own size
    assert month == (32, 240)
