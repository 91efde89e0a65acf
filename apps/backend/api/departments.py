from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db
from models.schemas import DepartmentConfig
from services import store
from services.departments import build_department_rows, split_departments
from services.errors import ValidationFailure

router = APIRouter(prefix="/departments", tags=["Departments"])

@router.get("/{year}")
async def list_departments(year: int, include_inactive: bool = False, db: Session = Depends(get_db)):
    departments = store.fetch_departments(db, year, active_only=not include_inactive)
    general, special = split_departments(departments)
    return {"academic_year": year, "general": general, "special": special}

@router.post("/{year}/save")
async def save_departments(year: int, config: DepartmentConfig, db: Session = Depends(get_db)):
    """
    Saves general and special departments for a year.

    General entries are ordered as given and must have distinct names; all
    special departments are written, with their active flag, so preferences
    survive deactivation.
    """
    try:
        rows = build_department_rows(year, config.general, config.special)
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    saved = store.save_departments(db, year, rows)
    return {"status": "saved", "academic_year": year, "count": len(saved)}
