from pydantic import BaseModel
from typing import List, Optional, Dict, Union
from datetime import date, datetime
from enum import Enum

class ScheduleKind(str, Enum):
    TERM = "term"
    VACATION = "vacation"
    HOLIDAY = "holiday"
    EXAM = "exam"
    EVENT = "event"

class AnchorField(str, Enum):
    SEM1_START = "sem1_start"
    SUMMER_CEREMONY = "summer_ceremony"
    SUMMER_START = "summer_start"
    SUMMER_END = "summer_end"
    SEM2_START = "sem2_start"
    WINTER_CEREMONY = "winter_ceremony"
    WINTER_START = "winter_start"
    WINTER_END = "winter_end"
    SPRING_SEM_START = "spring_sem_start"
    SPRING_CEREMONY = "spring_ceremony"
    SPRING_START = "spring_start"
    SPRING_END = "spring_end"

class DisplayKind(str, Enum):
    BACKGROUND_HOLIDAY = "background_holiday"
    HEADER_LABEL = "header_label"
    SCHEDULE = "schedule"

class Visibility(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"
    DEPT = "dept"

class RecurrenceFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

class ScheduleAnchor(BaseModel):
    field: AnchorField
    value: Optional[date] = None
    is_manual: bool = False

class BasicScheduleRow(BaseModel):
    academic_year: int
    type: ScheduleKind
    code: Optional[str] = None # Only system-anchored rows carry a code
    name: str
    start_date: date
    end_date: date
    is_holiday: bool = False

    class Config:
        from_attributes = True

class Department(BaseModel):
    id: Optional[int] = None
    academic_year: Optional[int] = None
    code: Optional[str] = None # Fixed identity of a special department; None for general ones
    dept_name: str
    dept_short: Optional[str] = None
    dept_color: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True

    class Config:
        from_attributes = True

class DepartmentInput(BaseModel):
    name: str
    nickname: Optional[str] = None
    color: Optional[str] = None

class SpecialDepartmentInput(BaseModel):
    id: str # e.g. "principal"
    nickname: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = False

class DepartmentConfig(BaseModel):
    general: List[DepartmentInput] = []
    special: List[SpecialDepartmentInput] = []

class ScheduleIn(BaseModel):
    title: str
    start_date: date
    end_date: Optional[date] = None
    dept_id: Optional[int] = None
    visibility: Visibility = Visibility.INTERNAL
    description: Optional[str] = ""
    is_printable: bool = True

class ScheduleRow(ScheduleIn):
    id: Optional[int] = None

    class Config:
        from_attributes = True

class Recurrence(BaseModel):
    frequency: RecurrenceFrequency
    until: date

class ScheduleCreateRequest(BaseModel):
    schedule: ScheduleIn
    recurrence: Optional[Recurrence] = None

class VariableHoliday(BaseModel):
    day: Optional[date] = None
    name: str = ""

class DateRange(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None

class MajorEvent(DateRange):
    name: str = ""

class SettingsIn(BaseModel):
    academic_year: int
    school_name: Optional[str] = None
    full_name_kr: Optional[str] = None
    name_en: Optional[str] = None
    level_kr: Optional[str] = None
    level_en: Optional[str] = None

class EditingState(BaseModel):
    """Snapshot of the basic-schedule editor for one academic year."""
    academic_year: int
    anchors: Dict[AnchorField, ScheduleAnchor] = {}
    holidays: Dict[date, List[str]] = {}
    variable_holidays: List[VariableHoliday] = []
    exams: Dict[str, DateRange] = {}
    major_events: List[MajorEvent] = []

class AnchorEdit(BaseModel):
    field: AnchorField
    value: Optional[date] = None

class EditRequest(BaseModel):
    state: EditingState
    edit: Optional[AnchorEdit] = None

class DisplayEvent(BaseModel):
    start: date
    end: Optional[date] = None
    kind: DisplayKind
    label: Optional[str] = None
    title: str = ""
    schedule_id: Optional[int] = None
    dept_id: Optional[int] = None
    class_name: Optional[str] = None
    background_color: Optional[str] = None
    text_color: Optional[str] = None
    is_background: bool = True

class DepartmentGroup(BaseModel):
    key: Union[int, str]
    info: Department
    events: List[DisplayEvent] = []

class EventModel(BaseModel):
    background_events: List[DisplayEvent] = []
    label_events: List[DisplayEvent] = []
    day_label_map: Dict[date, List[str]] = {}
    schedule_by_date_and_dept: Dict[date, Dict[Union[int, str], DepartmentGroup]] = {}
    red_day_map: Dict[date, bool] = {}

class DayCell(BaseModel):
    day: date
    labels: List[str] = []
    is_red: bool = False
    groups: List[DepartmentGroup] = []

class AuditLogEntry(BaseModel):
    id: int
    timestamp: datetime
    action_type: str
    target_table: str
    target_id: Optional[int] = None
    changes: Dict = {}

    class Config:
        from_attributes = True
