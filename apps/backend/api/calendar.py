from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db
from services import store
from services.calendar_view import day_cells
from services.events import FIXED_OBSERVANCE_DAYS, build_event_model
from services.schedule_graph import last_day_of_february

router = APIRouter(prefix="/calendar", tags=["Calendar"])

def _load_model(db: Session, year: int):
    basic_rows = store.fetch_basic_rows(db, year)
    departments = store.fetch_departments(db, year)
    schedules = store.fetch_schedules(db)
    return build_event_model(basic_rows, schedules, FIXED_OBSERVANCE_DAYS, departments, year)

@router.get("/{year}")
async def get_calendar(year: int, db: Session = Depends(get_db)):
    """Merged event model: background labels, red days and grouped department events."""
    return _load_model(db, year)

@router.get("/{year}/cells")
async def get_calendar_cells(year: int, start: Optional[date] = None, end: Optional[date] = None,
                             db: Session = Depends(get_db)):
    """Per-day cells for a renderer; defaults to the whole academic year."""
    start = start or date(year, 3, 1)
    end = end or last_day_of_february(year + 1)
    if end < start:
        raise HTTPException(status_code=422, detail="end must not be before start")
    return day_cells(_load_model(db, year), start, end)
