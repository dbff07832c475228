import pytest

from shift_engine.date_resolver import DateResolver
from shift_engine.models import WeekStart, Weekday

# Monday
WEEK = WeekStart(2025, 8, 11)


@pytest.fixture
def resolver():
    return DateResolver()


def test_weekday_label_overrides_conflicting_day_digits(resolver):
    result = resolver.resolve(2025, 8, 3, Weekday.FRIDAY, WEEK)
    assert result.date == "2025-08-15"
    assert result.from_day_month == "2025-08-03"
    assert result.overridden


def test_override_when_matching_weekday_is_outside_week(resolver):
    result = resolver.resolve(2025, 8, 20, Weekday.WEDNESDAY, WEEK)
    assert result.date == "2025-08-13"
    assert result.overridden


def test_agreeing_candidates(resolver):
    result = resolver.resolve(2025, 8, 13, Weekday.WEDNESDAY, WEEK)
    assert result.date == "2025-08-13"
    assert not result.overridden


def test_day_month_without_week_start(resolver):
    assert resolver.resolve(2025, 8, 3, Weekday.FRIDAY, None).date == "2025-08-03"


def test_weekday_only(resolver):
    assert resolver.resolve(2025, None, None, Weekday.SUNDAY, WEEK).date == "2025-08-17"


def test_impossible_day_falls_back_to_weekday(resolver):
    assert resolver.resolve(2025, 9, 31, Weekday.MONDAY, WEEK).date == "2025-08-11"
    assert resolver.resolve(2025, 9, 31, None, WEEK).date is None


def test_nothing_to_resolve(resolver):
    assert resolver.resolve(2025, None, 12, None, None).date is None
