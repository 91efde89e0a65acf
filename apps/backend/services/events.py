import logging
import re
import unicodedata
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set

from models.schemas import (
    BasicScheduleRow, Department, DisplayEvent, DisplayKind, EventModel,
    ScheduleKind, ScheduleRow,
)
from services.calendar_view import group_by_department
from services.holidays import month_day_to_date

log = logging.getLogger(__name__)

MAX_RANGE_DAYS = 365
DEFAULT_EVENT_COLOR = "#3788d8"
OBSERVANCE_TEXT_COLOR = "#16a34a"

# MM-DD -> name; shown every year, never a day off
FIXED_OBSERVANCE_DAYS = {
    "02-02": "세계 습지의 날",
    "03-22": "세계 물의 날",
    "04-05": "식목일",
    "04-22": "지구의 날",
    "05-22": "생물종다양성 보존의 날",
    "06-05": "환경의 날",
    "08-22": "에너지의 날",
    "09-06": "자원순환의 날",
    "09-16": "세계 오존층 보호의 날",
}

def normalize_title(text: Optional[str]) -> str:
    """NFC, case-folded, with whitespace, punctuation and underscores stripped."""
    text = unicodedata.normalize("NFC", text or "")
    return re.sub(r"[\W_]+", "", text).casefold()

def expand_days(start: date, end: Optional[date] = None, limit: int = MAX_RANGE_DAYS) -> List[date]:
    """Inclusive day list from start to end (end defaults to start), at most `limit` days."""
    end = end or start
    days = []
    current = start
    while current <= end and len(days) < limit:
        days.append(current)
        current += timedelta(days=1)
    return days

def _row_style(row: BasicScheduleRow) -> dict:
    """Display attributes per schedule kind."""
    kind = row.type
    if kind is ScheduleKind.TERM:
        return {"kind": DisplayKind.HEADER_LABEL, "class_name": "holiday-bg-event", "background_color": "transparent"}
    if kind is ScheduleKind.VACATION:
        return {"kind": DisplayKind.HEADER_LABEL, "class_name": "holiday-bg-event", "background_color": None}
    if kind is ScheduleKind.HOLIDAY:
        return {"kind": DisplayKind.BACKGROUND_HOLIDAY, "class_name": "holiday-bg-event", "background_color": None}
    if kind is ScheduleKind.EXAM:
        return {"kind": DisplayKind.HEADER_LABEL, "class_name": "event-exam-text", "background_color": "#fff7ed"}
    if kind is ScheduleKind.EVENT:
        return {"kind": DisplayKind.HEADER_LABEL, "class_name": "event-major-text", "background_color": "#eff6ff"}
    raise ValueError(f"Unknown schedule kind: {kind!r}")

def _is_true_holiday(row: BasicScheduleRow) -> bool:
    return row.type is ScheduleKind.HOLIDAY or row.is_holiday

def observance_dates(fixed_observance_days: Dict[str, str], year: int) -> List[tuple]:
    """(date, name) for the previous, current and next academic year."""
    result = []
    for y in (year - 1, year, year + 1):
        for mmdd, name in fixed_observance_days.items():
            result.append((month_day_to_date(y, mmdd), name))
    return result

class EventAggregator:
    """
    Merges the basic schedule, fixed observance days and department events.

    Admin-side entries (basic rows and observances) are recorded per day in a
    normalized-title lookup; a department event day whose normalized title is
    already in the lookup for that date is dropped as a duplicate.
    """

    def __init__(self, departments: Iterable[Department]):
        self.departments = sorted(departments, key=lambda d: d.sort_order)
        self.admin_titles: Dict[date, Set[str]] = {}
        self.day_label_map: Dict[date, List[str]] = {}
        self.red_day_map: Dict[date, bool] = {}

    def _add_admin_ref(self, day: date, name: str):
        key = normalize_title(name)
        if not key:
            return
        self.admin_titles.setdefault(day, set()).add(key)

    def _add_label(self, day: date, label: str):
        labels = self.day_label_map.setdefault(day, [])
        if label and label not in labels:
            labels.append(label)

    def is_duplicate(self, day: date, title: str) -> bool:
        # Punctuation-only titles never match anything
        key = normalize_title(title)
        return bool(key) and key in self.admin_titles.get(day, set())

    def add_basic_rows(self, rows: Iterable[BasicScheduleRow]) -> List[DisplayEvent]:
        events = []
        for row in rows:
            style = _row_style(row)
            days = expand_days(row.start_date, row.end_date)
            if not days:
                log.debug("Basic row %r has an inverted range, skipped", row.name)
            for day in days:
                self._add_admin_ref(day, row.name)
                self._add_label(day, row.name)
                if _is_true_holiday(row):
                    self.red_day_map[day] = True
                events.append(DisplayEvent(start=day, label=row.name, is_background=True, **style))
        return events

    def add_observances(self, fixed_observance_days: Dict[str, str], year: int) -> List[DisplayEvent]:
        events = []
        for day, name in observance_dates(fixed_observance_days, year):
            self._add_admin_ref(day, name)
            self._add_label(day, name)
            events.append(DisplayEvent(
                start=day, kind=DisplayKind.HEADER_LABEL, label=name, title=name,
                class_name="event-env-text", background_color="transparent",
                text_color=OBSERVANCE_TEXT_COLOR, is_background=False,
            ))
        return events

    def schedule_days(self, rows: Iterable[ScheduleRow]) -> Dict[date, List[DisplayEvent]]:
        """Per-day foreground events, with duplicates of admin entries removed."""
        colors = {d.id: d.dept_color for d in self.departments if d.id is not None}
        by_day: Dict[date, List[DisplayEvent]] = {}
        suppressed = 0
        for row in rows:
            color = colors.get(row.dept_id) or DEFAULT_EVENT_COLOR
            for day in expand_days(row.start_date, row.end_date):
                if self.is_duplicate(day, row.title):
                    suppressed += 1
                    continue
                by_day.setdefault(day, []).append(DisplayEvent(
                    start=row.start_date, end=row.end_date or row.start_date,
                    kind=DisplayKind.SCHEDULE, title=row.title, schedule_id=row.id,
                    dept_id=row.dept_id, background_color=color, is_background=False,
                ))
        if suppressed:
            log.debug("Suppressed %d department event day(s) duplicating admin entries", suppressed)
        return by_day

def build_event_model(
    basic_rows: Iterable[BasicScheduleRow],
    department_rows: Iterable[ScheduleRow],
    fixed_observance_days: Dict[str, str],
    departments: Iterable[Department],
    year: int,
) -> EventModel:
    """Pure merge of the three event sources into the rendering model."""
    aggregator = EventAggregator(departments)
    background_events = aggregator.add_basic_rows(basic_rows)
    label_events = aggregator.add_observances(fixed_observance_days, int(year))
    by_day = aggregator.schedule_days(department_rows)

    return EventModel(
        background_events=background_events,
        label_events=label_events,
        day_label_map=aggregator.day_label_map,
        schedule_by_date_and_dept=group_by_department(by_day, aggregator.departments),
        red_day_map=aggregator.red_day_map,
    )
