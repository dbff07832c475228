from datetime import datetime

from shift_engine.deduplicator import PastShiftDeduplicator, looks_like_actual_time
from shift_engine.models import DraftShift

TZ = "America/New_York"
NOW = datetime(2025, 8, 20, 9, 0)


def _shift(date_str, raw, start="09:00"):
    return DraftShift(
        id=raw, date=date_str, start_time=start, end_time="17:00",
        timezone=TZ, source="batch", confidence=0.5, raw=raw,
    )


def test_clocked_record_replaced_by_scheduled_one():
    clocked = _shift("2025-08-13", "Clock in 9:02am - 5:01pm", start="09:02")
    scheduled = _shift("2025-08-13", "Working 9:00am - 5:00pm")

    kept = PastShiftDeduplicator().dedupe([clocked, scheduled], TZ, NOW)
    assert kept == [scheduled]


def test_first_scheduled_record_wins():
    first = _shift("2025-08-13", "Working 9:00am - 5:00pm")
    second = _shift("2025-08-13", "Actual 9:05am - 5:00pm")

    assert PastShiftDeduplicator().dedupe([first, second], TZ, NOW) == [first]


def test_today_counts_as_past():
    a = _shift("2025-08-20", "Working 9:00am - 5:00pm")
    b = _shift("2025-08-20", "Working 1:00pm - 5:00pm")
    assert PastShiftDeduplicator().dedupe([a, b], TZ, NOW) == [a]


def test_future_duplicates_are_kept_in_order():
    early = _shift("2025-08-13", "Working 9:00am - 5:00pm")
    a = _shift("2025-08-25", "Working 9:00am - 1:00pm")
    b = _shift("2025-08-25", "Working 2:00pm - 6:00pm")

    assert PastShiftDeduplicator().dedupe([early, a, b], TZ, NOW) == [early, a, b]


def test_looks_like_actual_time():
    assert looks_like_actual_time("Time in 9:01am")
    assert looks_like_actual_time("CLOCKED 9-5")
    assert not looks_like_actual_time("Working 9:00am - 5:00pm")
    assert not looks_like_actual_time("")
