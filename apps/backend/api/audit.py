from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from database import get_db
from services import store

router = APIRouter(prefix="/audit", tags=["Audit"])

@router.get("/")
async def list_audit_logs(limit: int = Query(20, ge=1, le=200), db: Session = Depends(get_db)):
    # Schedule and settings writes, newest first
    return store.fetch_audit_logs(db, limit)
