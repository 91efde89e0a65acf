import logging
from datetime import date
from typing import Optional

from korean_lunar_calendar import KoreanLunarCalendar

from services.errors import ConversionFailure

log = logging.getLogger(__name__)

class LunarSolarConverter:
    """
    Converts lunar month/day pairs of an academic year to Gregorian dates.

    The academic year starts in March, so lunar months 1-2 (Seollal) fall in
    the following calendar year while later months (Buddha's Birthday, Chuseok)
    stay in the base year.
    """

    def target_year(self, base_year: int, lunar_month: int) -> int:
        return base_year + 1 if lunar_month <= 2 else base_year

    def convert(self, lunar_year: int, lunar_month: int, lunar_day: int) -> date:
        calendar = KoreanLunarCalendar()
        if not calendar.setLunarDate(lunar_year, lunar_month, lunar_day, False):
            raise ConversionFailure(
                f"No solar date for lunar {lunar_year}-{lunar_month:02d}-{lunar_day:02d}"
            )
        if not (calendar.solarYear and calendar.solarMonth and calendar.solarDay):
            raise ConversionFailure(
                f"Incomplete solar date for lunar {lunar_year}-{lunar_month:02d}-{lunar_day:02d}"
            )
        return date(calendar.solarYear, calendar.solarMonth, calendar.solarDay)

    def solar_date_for_lunar(self, base_year: int, lunar_month: int, lunar_day: int) -> Optional[date]:
        """
        Returns the solar date or None when the lookup fails.

        None means "omit this holiday for the year"; it is never fatal.
        """
        lunar_year = self.target_year(int(base_year), int(lunar_month))
        try:
            return self.convert(lunar_year, int(lunar_month), int(lunar_day))
        except (ConversionFailure, ValueError, TypeError, IndexError, KeyError) as e:
            log.warning("Lunar conversion skipped for %s/%s (academic year %s): %s",
                        lunar_month, lunar_day, base_year, e)
            return None
