from fastapi import APIRouter

from services.holidays import HolidayRuleEngine

router = APIRouter(prefix="/holidays", tags=["Holidays"])

@router.get("/{year}")
async def get_holidays(year: int):
    """
    Returns the computed holidays of an academic year (March..February).

    Dates map to their names in rule order; a substitute holiday is always
    alone on its date.
    """
    return {"academic_year": year, "holidays": HolidayRuleEngine().compute_holidays(year)}
