import pytest
from datetime import date

from services.errors import ConversionFailure
from services.holidays import HolidayRuleEngine, holiday_label, is_non_school_day, month_day_to_date
from services.lunar import LunarSolarConverter

# Mocks
class FailingConverter(LunarSolarConverter):
    """Fails for the lunar months in `broken`, otherwise uses the real tables."""
    def __init__(self, broken):
        self.broken = set(broken)

    def convert(self, lunar_year, lunar_month, lunar_day):
        if lunar_month in self.broken:
            raise ConversionFailure(f"no table entry for {lunar_year}-{lunar_month}")
        return super().convert(lunar_year, lunar_month, lunar_day)

@pytest.fixture(scope="module")
def holidays_2025():
    return HolidayRuleEngine().compute_holidays(2025)

def test_month_day_to_date_crosses_march_boundary():
    assert month_day_to_date(2025, "03-01") == date(2025, 3, 1)
    assert month_day_to_date(2025, "12-25") == date(2025, 12, 25)
    assert month_day_to_date(2025, "01-01") == date(2026, 1, 1)
    assert month_day_to_date(2025, "02-28") == date(2026, 2, 28)

def test_lunar_target_year():
    converter = LunarSolarConverter()
    assert converter.target_year(2025, 1) == 2026
    assert converter.target_year(2025, 2) == 2026
    assert converter.target_year(2025, 4) == 2025
    assert converter.target_year(2025, 8) == 2025

def test_fixed_holidays(holidays_2025):
    assert holidays_2025[date(2025, 3, 1)] == ["삼일절"]
    assert holidays_2025[date(2025, 10, 9)] == ["한글날"]
    assert holidays_2025[date(2026, 1, 1)] == ["신정"]
    assert date(2025, 1, 1) not in holidays_2025

def test_lunar_holidays(holidays_2025):
    assert holidays_2025[date(2025, 10, 5)] == ["추석 연휴"]
    assert holidays_2025[date(2025, 10, 6)] == ["추석"]
    assert holidays_2025[date(2025, 10, 7)] == ["추석 연휴"]

    assert holidays_2025[date(2026, 2, 16)] == ["설날 연휴"]
    assert holidays_2025[date(2026, 2, 17)] == ["설날"]
    assert holidays_2025[date(2026, 2, 18)] == ["설날 연휴"]

def test_shared_date_keeps_processing_order(holidays_2025):
    # Buddha's Birthday falls on Children's Day in 2025
    assert holidays_2025[date(2025, 5, 5)] == ["어린이날", "부처님오신날"]
    assert holiday_label(holidays_2025[date(2025, 5, 5)]) == "어린이날, 부처님오신날"

def test_saturday_holiday_gets_substitute(holidays_2025):
    # 2025-03-01 is a Saturday; Sunday is skipped
    assert holidays_2025[date(2025, 3, 3)] == ["대체공휴일(삼일절)"]
    assert date(2025, 3, 2) not in holidays_2025

def test_sunday_span_day_substitute_skips_taken_dates(holidays_2025):
    # Chuseok eve on Sunday 2025-10-05; 10-06 and 10-07 are already holidays
    assert holidays_2025[date(2025, 10, 8)] == ["대체공휴일(추석 연휴)"]

def test_childrens_day_on_sunday():
    holidays = HolidayRuleEngine().compute_holidays(2024)
    assert holidays[date(2024, 5, 5)] == ["어린이날"]
    assert holidays[date(2024, 5, 6)] == ["대체공휴일(어린이날)"]
    assert holidays[date(2024, 5, 15)] == ["부처님오신날"]
    assert holidays[date(2024, 9, 17)] == ["추석"]
    assert holidays[date(2025, 1, 29)] == ["설날"]

def test_substitute_never_shares_a_date(holidays_2025):
    for day, names in holidays_2025.items():
        if any(n.startswith("대체공휴일") for n in names):
            assert len(names) == 1
            assert day.weekday() < 5

def test_result_is_sorted(holidays_2025):
    days = list(holidays_2025)
    assert days == sorted(days)
    assert all(date(2025, 3, 1) <= d <= date(2026, 2, 28) for d in days)

def test_failed_conversion_drops_only_that_holiday():
    holidays = HolidayRuleEngine(converter=FailingConverter(broken=[8])).compute_holidays(2025)
    names = [n for ns in holidays.values() for n in ns]
    assert "추석" not in names
    assert "추석 연휴" not in names
    assert date(2025, 10, 8) not in holidays
    assert "설날" in names
    assert "부처님오신날" in names
    assert holidays[date(2025, 3, 3)] == ["대체공휴일(삼일절)"]

def test_solar_date_for_lunar_returns_none_on_failure():
    converter = FailingConverter(broken=[4])
    assert converter.solar_date_for_lunar(2025, 4, 8) is None
    assert converter.solar_date_for_lunar(2025, 8, 15) == date(2025, 10, 6)

def test_is_non_school_day(holidays_2025):
    assert is_non_school_day(date(2025, 3, 8), holidays_2025)  # Saturday
    assert is_non_school_day(date(2025, 3, 3), holidays_2025)  # substitute
    assert not is_non_school_day(date(2025, 3, 4), holidays_2025)
    assert is_non_school_day(date(2025, 3, 4), holidays_2025, [date(2025, 3, 4)])

def test_compute_holidays_is_deterministic(holidays_2025):
    engine = HolidayRuleEngine()
    assert engine.compute_holidays(2025) == engine.compute_holidays(2025)
    assert HolidayRuleEngine().compute_holidays(2025) == holidays_2025
    assert list(engine.compute_holidays(2025)) == list(holidays_2025)
