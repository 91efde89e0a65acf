import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db
from models.schemas import EditingState, EditRequest
from services import store
from services.errors import ValidationFailure
from services.schedule_graph import ScheduleDateGraph

log = logging.getLogger(__name__)

router = APIRouter(prefix="/basic-schedule", tags=["Basic Schedule"])

@router.get("/{year}")
async def get_basic_schedule(year: int, db: Session = Depends(get_db)):
    """
    Loads the basic-schedule editor for a year.

    A year without stored rows is new: its year-based dates (1st semester
    start, winter vacation end) are derived automatically.
    """
    rows = store.fetch_basic_rows(db, year)
    graph = ScheduleDateGraph(year)
    if rows:
        graph.load_rows(rows)
    else:
        graph.select_year(year)
    return {"is_new": not rows, "state": graph.to_state()}

@router.post("/{year}/edit")
async def edit_basic_schedule(year: int, req: EditRequest):
    """
    Applies one direct edit to the posted editor state and returns the
    cascaded state. The edited field becomes manual.

    Without an edit the year-based dates are recomputed (year selection,
    variable holiday changes).
    """
    if req.state.academic_year != year:
        raise HTTPException(status_code=422, detail="Academic year mismatch")
    graph = ScheduleDateGraph.from_state(req.state)
    if req.edit:
        graph.edit(req.edit.field, req.edit.value)
    else:
        graph.select_year(year)
    return graph.to_state()

@router.post("/{year}/save")
async def save_basic_schedule(year: int, state: EditingState, db: Session = Depends(get_db)):
    """
    Flattens the editor state into basic_schedules rows and replaces the
    year's rows (delete old, insert new).
    """
    if state.academic_year != year:
        raise HTTPException(status_code=422, detail="Academic year mismatch")
    graph = ScheduleDateGraph.from_state(state)
    try:
        rows = graph.to_rows()
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))

    count = store.replace_basic_rows(db, year, rows)
    log.info("Saved basic schedule for %s (%d rows)", year, count)
    return {"status": "saved", "academic_year": year, "rows": count}
