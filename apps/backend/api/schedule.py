import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db
from models.schemas import ScheduleCreateRequest, ScheduleIn
from services import store
from services.errors import ValidationFailure
from services.recurrence import expand_recurrence

log = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["Schedule"])

def _check_range(schedule: ScheduleIn):
    if schedule.end_date and schedule.end_date < schedule.start_date:
        raise HTTPException(status_code=422, detail="End date is before start date")

@router.post("/")
async def create_schedule(req: ScheduleCreateRequest, db: Session = Depends(get_db)):
    """
    Creates a department event.

    With a recurrence, one row is written per occurrence (weekly, biweekly
    or monthly, up to the `until` date and at most 52 rows).

    Returns:
        dict: number of rows created and their ids.
    """
    _check_range(req.schedule)
    schedules = [req.schedule]
    if req.recurrence:
        try:
            schedules = expand_recurrence(req.schedule, req.recurrence.frequency, req.recurrence.until)
        except ValidationFailure as e:
            raise HTTPException(status_code=422, detail=str(e))

    created = store.insert_schedules(db, schedules, recurring=bool(req.recurrence))
    log.info("Created %d schedule row(s) for %r", len(created), req.schedule.title)
    return {"status": "success", "count": len(created), "ids": [s.id for s in created]}

@router.get("/search")
async def search_schedules(q: str = "", db: Session = Depends(get_db)):
    # Queries shorter than two characters return nothing
    return store.search_schedules(db, q)

@router.put("/{schedule_id}")
async def update_schedule(schedule_id: int, schedule: ScheduleIn, db: Session = Depends(get_db)):
    _check_range(schedule)
    item = store.update_schedule(db, schedule_id, schedule)
    if not item:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return item

@router.delete("/{schedule_id}")
async def delete_schedule(schedule_id: int, db: Session = Depends(get_db)):
    if not store.delete_schedule(db, schedule_id):
        raise HTTPException(status_code=404, detail="Schedule not found")
    return {"status": "deleted", "id": schedule_id}
