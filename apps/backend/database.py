from sqlalchemy import create_engine, Column, Integer, String, Boolean, Date, DateTime, JSON, Text
from datetime import datetime
from sqlalchemy.orm import declarative_base, sessionmaker
import os

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./academic_calendar.db")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

class SettingsDB(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    academic_year = Column(Integer, unique=True, index=True)
    school_name = Column(String)
    full_name_kr = Column(String, nullable=True)
    name_en = Column(String, nullable=True)
    level_kr = Column(String, nullable=True)
    level_en = Column(String, nullable=True)

class BasicScheduleDB(Base):
    __tablename__ = "basic_schedules"

    id = Column(Integer, primary_key=True, index=True)
    academic_year = Column(Integer, index=True)
    type = Column(String) # term / vacation / holiday / exam / event
    code = Column(String, nullable=True) # e.g. "TERM1_START"; NULL for freeform rows
    name = Column(String)
    start_date = Column(Date)
    end_date = Column(Date)
    is_holiday = Column(Boolean, default=False)

class DepartmentDB(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    academic_year = Column(Integer, index=True)
    code = Column(String, nullable=True) # e.g. "principal"; NULL for general departments
    dept_name = Column(String)
    dept_short = Column(String, nullable=True)
    dept_color = Column(String, nullable=True)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)

class ScheduleDB(Base):
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String)
    start_date = Column(Date, index=True)
    end_date = Column(Date)
    dept_id = Column(Integer, nullable=True)
    visibility = Column(String, default="internal")
    description = Column(Text, default="")
    is_printable = Column(Boolean, default=True)

class AuditLogDB(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    action_type = Column(String) # INSERT / RECUR_INSERT / UPDATE / DELETE / UPSERT
    target_table = Column(String)
    target_id = Column(Integer, nullable=True)
    changes = Column(JSON)

def init_db():
    Base.metadata.create_all(bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
