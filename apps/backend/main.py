from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import logging
import os
from datetime import date
from typing import Optional
from dotenv import load_dotenv
load_dotenv() # Load env vars from .env

from api import audit, basic_schedule, calendar, departments, holidays, schedule, settings
from database import init_db, SessionLocal, SettingsDB
from services.errors import PartialReplaceFailure, PersistenceFailure

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title="Academic Calendar API")

def current_academic_year(today: Optional[date] = None) -> int:
    # The academic year starts in March; January and February belong to the previous one
    today = today or date.today()
    return today.year if today.month >= 3 else today.year - 1

@app.on_event("startup")
def on_startup():
    init_db()
    seed_data()

def seed_data():
    db = SessionLocal()
    try:
        year = current_academic_year()
        if not db.query(SettingsDB).filter(SettingsDB.academic_year == year).first():
            log.info("Seeding default settings for academic year %s", year)
            db.add(SettingsDB(academic_year=year, school_name=""))
            db.commit()
    finally:
        db.close()

@app.exception_handler(PartialReplaceFailure)
async def partial_replace_handler(request: Request, exc: PartialReplaceFailure):
    log.error("Partial replace on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "error": "partial_replace", "academic_year": exc.academic_year},
    )

@app.exception_handler(PersistenceFailure)
async def persistence_handler(request: Request, exc: PersistenceFailure):
    log.error("Persistence failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc), "error": "persistence"})

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(holidays.router, prefix="/api")
app.include_router(settings.router, prefix="/api")
app.include_router(basic_schedule.router, prefix="/api")
app.include_router(departments.router, prefix="/api")
app.include_router(schedule.router, prefix="/api")
app.include_router(calendar.router, prefix="/api")
app.include_router(audit.router, prefix="/api")

@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8765))
    uvicorn.run("main:app", host="127.0.0.1", port=port, reload=True)
