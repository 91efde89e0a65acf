import logging
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional

from services.lunar import LunarSolarConverter

log = logging.getLogger(__name__)

HolidayMap = Dict[date, List[str]]

# MM-DD -> name. Months before March belong to the next calendar year.
FIXED_HOLIDAYS = {
    "03-01": "삼일절",
    "05-01": "근로자의날",
    "05-05": "어린이날",
    "06-06": "현충일",
    "07-17": "제헌절",
    "08-15": "광복절",
    "10-03": "개천절",
    "10-09": "한글날",
    "12-25": "성탄절",
    "01-01": "신정",
}

BUDDHA_BIRTHDAY = ((4, 8), "부처님오신날")
LUNAR_SPANS = [
    ((1, 1), "설날"),
    ((8, 15), "추석"),
]
SPAN_SUFFIX = "연휴"
SUBSTITUTE_TEMPLATE = "대체공휴일({name})"

SATURDAY = 5
SUNDAY = 6

class SubstitutionClass(str, Enum):
    WEEKEND = "weekend" # Saturday or Sunday
    SUNDAY = "sunday"   # Sunday only
    ALL = "all"         # Saturday or Sunday (overlap with another holiday is not handled)

SUBSTITUTION_RULES = {
    "삼일절": SubstitutionClass.WEEKEND,
    "광복절": SubstitutionClass.WEEKEND,
    "개천절": SubstitutionClass.WEEKEND,
    "한글날": SubstitutionClass.WEEKEND,
    "성탄절": SubstitutionClass.WEEKEND,
    "부처님오신날": SubstitutionClass.WEEKEND,
    "어린이날": SubstitutionClass.ALL,
    "설날": SubstitutionClass.SUNDAY,
    "설날 연휴": SubstitutionClass.SUNDAY,
    "추석": SubstitutionClass.SUNDAY,
    "추석 연휴": SubstitutionClass.SUNDAY,
}

def shift_year(academic_year: int, month: int) -> int:
    """Calendar year of a month-day inside an academic year (March..February)."""
    return academic_year + 1 if month < 3 else academic_year

def month_day_to_date(academic_year: int, mmdd: str) -> date:
    month, day = (int(p) for p in mmdd.split("-"))
    return date(shift_year(academic_year, month), month, day)

def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)

def holiday_label(names: Iterable[str]) -> str:
    return ", ".join(names)

def is_non_school_day(day: date, holidays: HolidayMap, extra_dates: Iterable[date] = ()) -> bool:
    """Weekend, computed holiday, or manually entered holiday."""
    if is_weekend(day):
        return True
    if day in holidays:
        return True
    return day in set(extra_dates)

class HolidayRuleEngine:
    """
    Computes the full holiday set of an academic year.

    Order of processing:
    1. Fixed solar holidays (shifted across the March boundary).
    2. Lunar holidays: Buddha's Birthday, then Seollal and Chuseok spans.
    3. Substitute holidays for eligible holidays falling on a weekend.

    A failed lunar conversion only drops that holiday.
    """

    def __init__(self, converter: Optional[LunarSolarConverter] = None):
        self.converter = converter or LunarSolarConverter()

    def _add(self, results: HolidayMap, day: date, name: str):
        results.setdefault(day, []).append(name)

    def _fixed_holidays(self, year: int, results: HolidayMap):
        for mmdd, name in FIXED_HOLIDAYS.items():
            self._add(results, month_day_to_date(year, mmdd), name)

    def _lunar_holidays(self, year: int, results: HolidayMap):
        (month, day), name = BUDDHA_BIRTHDAY
        solar = self.converter.solar_date_for_lunar(year, month, day)
        if solar:
            self._add(results, solar, name)

        for (month, day), name in LUNAR_SPANS:
            main = self.converter.solar_date_for_lunar(year, month, day)
            if not main:
                continue
            self._add(results, main - timedelta(days=1), f"{name} {SPAN_SUFFIX}")
            self._add(results, main, name)
            self._add(results, main + timedelta(days=1), f"{name} {SPAN_SUFFIX}")

    def _needs_substitute(self, day: date, rule: SubstitutionClass) -> bool:
        weekday = day.weekday()
        if rule is SubstitutionClass.WEEKEND:
            return weekday in (SATURDAY, SUNDAY)
        if rule is SubstitutionClass.SUNDAY:
            return weekday == SUNDAY
        if rule is SubstitutionClass.ALL:
            return weekday in (SATURDAY, SUNDAY)
        raise ValueError(f"Unknown substitution class: {rule!r}")

    def _substitutes(self, results: HolidayMap) -> HolidayMap:
        substitutes: HolidayMap = {}
        for day in sorted(results):
            for name in results[day]:
                rule = SUBSTITUTION_RULES.get(name)
                if rule is None or not self._needs_substitute(day, rule):
                    continue

                candidate = day + timedelta(days=1)
                while is_weekend(candidate) or candidate in results or candidate in substitutes:
                    candidate += timedelta(days=1)
                substitutes[candidate] = [SUBSTITUTE_TEMPLATE.format(name=name)]
                log.debug("Substitute holiday for %s (%s) on %s", name, day, candidate)
        return substitutes

    def compute_holidays(self, year: int) -> HolidayMap:
        """
        Returns {date: [names...]} for the academic year, sorted by date.

        Names on one date keep processing order; substitutes never share a
        date with another holiday.
        """
        year = int(year)
        results: HolidayMap = {}
        self._fixed_holidays(year, results)
        self._lunar_holidays(year, results)
        results.update(self._substitutes(results))
        return {day: results[day] for day in sorted(results)}
