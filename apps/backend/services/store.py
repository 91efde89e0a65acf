import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import AuditLogDB, BasicScheduleDB, DepartmentDB, ScheduleDB, SettingsDB
from models.schemas import AuditLogEntry, BasicScheduleRow, Department, ScheduleIn, ScheduleRow, SettingsIn
from services.errors import PartialReplaceFailure, PersistenceFailure

log = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2

def _rows_for_year(db: Session, model, academic_year: int):
    return db.query(model).filter(model.academic_year == academic_year)

def _basic_row_values(row: BasicScheduleRow) -> dict:
    values = row.model_dump()
    values["type"] = row.type.value
    return values

def _schedule_values(schedule: ScheduleIn) -> dict:
    values = schedule.model_dump()
    values["visibility"] = schedule.visibility.value
    values["end_date"] = schedule.end_date or schedule.start_date
    return values

# --- Reads ---

def fetch_settings(db: Session, academic_year: int) -> Optional[SettingsDB]:
    try:
        return _rows_for_year(db, SettingsDB, academic_year).first()
    except SQLAlchemyError as e:
        raise PersistenceFailure(f"settings: read failed for {academic_year}: {e}") from e

def fetch_basic_rows(db: Session, academic_year: int) -> List[BasicScheduleRow]:
    try:
        items = _rows_for_year(db, BasicScheduleDB, academic_year).order_by(BasicScheduleDB.id).all()
    except SQLAlchemyError as e:
        raise PersistenceFailure(f"basic_schedules: read failed for {academic_year}: {e}") from e
    return [BasicScheduleRow.model_validate(i) for i in items]

def fetch_departments(db: Session, academic_year: int, active_only: bool = True) -> List[Department]:
    """Departments of a year in sort order; inactive ones only on request."""
    try:
        query = _rows_for_year(db, DepartmentDB, academic_year)
        if active_only:
            query = query.filter(DepartmentDB.is_active == True)
        items = query.order_by(DepartmentDB.sort_order, DepartmentDB.id).all()
    except SQLAlchemyError as e:
        raise PersistenceFailure(f"departments: read failed for {academic_year}: {e}") from e
    return [Department.model_validate(i) for i in items]

def fetch_schedules(db: Session, start: Optional[date] = None, end: Optional[date] = None) -> List[ScheduleRow]:
    """Department events, optionally only those overlapping [start, end]."""
    try:
        query = db.query(ScheduleDB)
        if start:
            query = query.filter(or_(ScheduleDB.end_date >= start, ScheduleDB.start_date >= start))
        if end:
            query = query.filter(ScheduleDB.start_date <= end)
        items = query.order_by(ScheduleDB.start_date, ScheduleDB.id).all()
    except SQLAlchemyError as e:
        raise PersistenceFailure(f"schedules: read failed: {e}") from e
    return [ScheduleRow.model_validate(i) for i in items]

def search_schedules(db: Session, text: str) -> List[ScheduleRow]:
    text = (text or "").strip()
    if len(text) < MIN_SEARCH_LENGTH:
        return []
    pattern = f"%{text}%"
    try:
        items = (
            db.query(ScheduleDB)
            .filter(or_(ScheduleDB.title.ilike(pattern), ScheduleDB.description.ilike(pattern)))
            .order_by(ScheduleDB.start_date)
            .all()
        )
    except SQLAlchemyError as e:
        raise PersistenceFailure(f"schedules: search failed: {e}") from e
    return [ScheduleRow.model_validate(i) for i in items]

def fetch_audit_logs(db: Session, limit: int = 20) -> List[AuditLogEntry]:
    """Most recent audit entries first."""
    try:
        items = (
            db.query(AuditLogDB)
            .order_by(AuditLogDB.timestamp.desc(), AuditLogDB.id.desc())
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        raise PersistenceFailure(f"audit_logs: read failed: {e}") from e
    return [AuditLogEntry.model_validate(i) for i in items]

# --- Writes ---

def _log_action(db: Session, action: str, table: str, target_id: Optional[int], changes: dict):
    """Queues an audit row; it is committed together with the write it describes."""
    db.add(AuditLogDB(action_type=action, target_table=table, target_id=target_id, changes=changes))

def upsert_settings(db: Session, settings: SettingsIn) -> SettingsDB:
    try:
        item = _rows_for_year(db, SettingsDB, settings.academic_year).first()
        values = settings.model_dump()
        if item:
            for key, value in values.items():
                setattr(item, key, value)
        else:
            item = SettingsDB(**values)
            db.add(item)
        db.flush()
        _log_action(db, "UPSERT", SettingsDB.__tablename__, item.id, {"academic_year": settings.academic_year})
        db.commit()
        db.refresh(item)
        return item
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceFailure(f"settings: write failed for {settings.academic_year}: {e}") from e

def replace_basic_rows(db: Session, academic_year: int, rows: List[BasicScheduleRow]) -> int:
    """
    Replaces every basic_schedules row of a year: delete, then insert.

    Runs in one session transaction. If the insert fails and the old rows are
    gone afterwards (a store without transactions), PartialReplaceFailure is
    raised; any other failure is a PersistenceFailure. Nothing is retried.
    """
    table = BasicScheduleDB.__tablename__
    try:
        previous = _rows_for_year(db, BasicScheduleDB, academic_year).count()
        _rows_for_year(db, BasicScheduleDB, academic_year).delete(synchronize_session=False)
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("Delete phase failed for %s/%s", table, academic_year)
        raise PersistenceFailure(f"{table}: could not delete rows for {academic_year}: {e}") from e

    try:
        db.add_all([BasicScheduleDB(**_basic_row_values(row)) for row in rows])
        db.flush()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("Insert phase failed for %s/%s", table, academic_year)
        if previous and not _old_rows_survived(db, academic_year):
            raise PartialReplaceFailure(table, academic_year, e) from e
        raise PersistenceFailure(f"{table}: could not insert rows for {academic_year}: {e}") from e

    log.info("Replaced %d %s row(s) for %s with %d", previous, table, academic_year, len(rows))
    return len(rows)

def _old_rows_survived(db: Session, academic_year: int) -> bool:
    try:
        return _rows_for_year(db, BasicScheduleDB, academic_year).count() > 0
    except SQLAlchemyError:
        log.exception("Could not verify %s rows for %s after a failed insert", BasicScheduleDB.__tablename__, academic_year)
        return False

def _department_key(dept) -> tuple:
    return ("code", dept.code) if dept.code else ("name", dept.dept_name)

def save_departments(db: Session, academic_year: int, departments: List[Department]) -> List[Department]:
    """
    Writes a year's departments, matching existing rows by identity.

    Special departments match on their code, general ones on their name.
    Matched rows keep their id so department events stay attached; rows no
    longer listed (and extra rows sharing one identity) are deleted.
    """
    try:
        existing = {}
        stale = []
        for item in _rows_for_year(db, DepartmentDB, academic_year).order_by(DepartmentDB.id).all():
            key = _department_key(item)
            if key in existing:
                stale.append(item)
            else:
                existing[key] = item
        for dept in departments:
            values = dept.model_dump(exclude={"id"})
            values["academic_year"] = academic_year
            item = existing.pop(_department_key(dept), None)
            if item:
                for key, value in values.items():
                    setattr(item, key, value)
            else:
                db.add(DepartmentDB(**values))
        for item in stale + list(existing.values()):
            db.delete(item)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceFailure(f"departments: write failed for {academic_year}: {e}") from e
    return fetch_departments(db, academic_year, active_only=False)

def insert_schedules(db: Session, schedules: List[ScheduleIn], recurring: bool = False) -> List[ScheduleRow]:
    """
    Inserts department events. A recurring series is audited as one
    RECUR_INSERT entry, single events as one INSERT each.
    """
    table = ScheduleDB.__tablename__
    try:
        items = []
        for s in schedules:
            items.append(ScheduleDB(**_schedule_values(s)))
        db.add_all(items)
        db.flush()
        if recurring:
            _log_action(db, "RECUR_INSERT", table, None, {"count": len(items), "title": schedules[0].title if schedules else None})
        else:
            for item in items:
                _log_action(db, "INSERT", table, item.id, {"title": item.title, "dept": item.dept_id})
        db.commit()
        for item in items:
            db.refresh(item)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceFailure(f"schedules: insert failed: {e}") from e
    return [ScheduleRow.model_validate(i) for i in items]

def update_schedule(db: Session, schedule_id: int, schedule: ScheduleIn) -> Optional[ScheduleRow]:
    try:
        item = db.query(ScheduleDB).filter(ScheduleDB.id == schedule_id).first()
        if not item:
            return None
        values = _schedule_values(schedule)
        for key, value in values.items():
            setattr(item, key, value)
        _log_action(db, "UPDATE", ScheduleDB.__tablename__, schedule_id, {"title": item.title, "dept": item.dept_id})
        db.commit()
        db.refresh(item)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceFailure(f"schedules: update failed for {schedule_id}: {e}") from e
    return ScheduleRow.model_validate(item)

def delete_schedule(db: Session, schedule_id: int) -> bool:
    try:
        item = db.query(ScheduleDB).filter(ScheduleDB.id == schedule_id).first()
        if not item:
            return False
        _log_action(db, "DELETE", ScheduleDB.__tablename__, schedule_id, {"title": item.title})
        db.delete(item)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceFailure(f"schedules: delete failed for {schedule_id}: {e}") from e
    return True
