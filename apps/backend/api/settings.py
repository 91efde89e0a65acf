from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from models.schemas import SettingsIn
from services import store

router = APIRouter(prefix="/settings", tags=["Settings"])

@router.get("/{year}")
async def get_settings(year: int, db: Session = Depends(get_db)):
    item = store.fetch_settings(db, year)
    if not item:
        return {"academic_year": year, "is_new": True, "value": None}
    return {
        "academic_year": year,
        "is_new": False,
        "value": SettingsIn.model_validate(item, from_attributes=True),
    }

@router.post("/save")
async def save_settings(item: SettingsIn, db: Session = Depends(get_db)):
    # Display name combines both languages when both are present
    if not item.school_name:
        if item.full_name_kr and item.name_en:
            item.school_name = f"{item.full_name_kr} ({item.name_en})"
        else:
            item.school_name = item.full_name_kr or item.name_en
    saved = store.upsert_settings(db, item)
    return {"status": "saved", "academic_year": saved.academic_year}
