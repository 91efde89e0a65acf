import calendar
import logging
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from models.schemas import (
    AnchorField, BasicScheduleRow, DateRange, EditingState, MajorEvent,
    ScheduleAnchor, ScheduleKind, VariableHoliday,
)
from services.errors import ValidationFailure
from services.holidays import HolidayMap, HolidayRuleEngine, holiday_label, is_non_school_day

log = logging.getLogger(__name__)

# code -> (kind, name, start field, end field)
ANCHOR_ROWS = [
    ("TERM1_START", ScheduleKind.TERM, "1학기 개학", AnchorField.SEM1_START, None),
    ("SUMMER_VAC", ScheduleKind.VACATION, "여름방학", AnchorField.SUMMER_START, AnchorField.SUMMER_END),
    ("SUMMER_VAC_CEREMONY", ScheduleKind.EVENT, "여름방학식", AnchorField.SUMMER_CEREMONY, None),
    ("TERM2_START", ScheduleKind.TERM, "2학기 개학", AnchorField.SEM2_START, None),
    ("WINTER_VAC_CEREMONY", ScheduleKind.EVENT, "겨울방학식", AnchorField.WINTER_CEREMONY, None),
    ("WINTER_VAC", ScheduleKind.VACATION, "겨울방학", AnchorField.WINTER_START, AnchorField.WINTER_END),
    ("SPRING_VAC_CEREMONY", ScheduleKind.EVENT, "봄방학식", AnchorField.SPRING_CEREMONY, None),
    ("SPRING_VAC", ScheduleKind.VACATION, "봄방학", AnchorField.SPRING_START, AnchorField.SPRING_END),
    ("SPRING_SEM_START", ScheduleKind.TERM, "봄 개학", AnchorField.SPRING_SEM_START, None),
]

EXAM_DEFINITIONS = {
    "EXAM_1_1": "1학기 1차지필",
    "EXAM_1_2": "1학기 2차지필",
    "EXAM_2_1": "2학기 1차지필",
    "EXAM_2_2": "2학기 2차지필",
    "EXAM_3_2_2": "3학년 2학기 2차지필",
}

def last_day_of_february(year: int) -> date:
    return date(year, 2, calendar.monthrange(year, 2)[1])

def _shift(value: Optional[date], days: int) -> Optional[date]:
    return value + timedelta(days=days) if value else None

class ScheduleDateGraph:
    """
    Editing context for one academic year's basic schedule.

    Owns the anchor dates, the computed holiday map, manually entered
    (variable) holidays, exam periods and major events. Derived anchors are
    recomputed through DEPENDENTS; any anchor edited directly becomes manual
    and is never overwritten by a cascade afterwards.
    """

    def __init__(self, year: int, engine: Optional[HolidayRuleEngine] = None):
        self.engine = engine or HolidayRuleEngine()
        self.year = int(year)
        self.anchors: Dict[AnchorField, ScheduleAnchor] = {f: ScheduleAnchor(field=f) for f in AnchorField}
        self.holidays: HolidayMap = self.engine.compute_holidays(self.year)
        self.variable_holidays: List[VariableHoliday] = []
        self.exams: Dict[str, DateRange] = {}
        self.major_events: List[MajorEvent] = []

    # --- Anchor access ---

    def value(self, field: AnchorField) -> Optional[date]:
        return self.anchors[field].value

    def is_manual(self, field: AnchorField) -> bool:
        return self.anchors[field].is_manual

    def _set_derived(self, field: AnchorField, value: Optional[date]):
        """Writes a derived value unless the field is manual, then cascades."""
        anchor = self.anchors[field]
        if anchor.is_manual:
            log.debug("Skipping %s: manual value %s kept", field.value, anchor.value)
            return
        anchor.value = value
        self._cascade(field)

    def _cascade(self, field: AnchorField):
        for rule in DEPENDENTS.get(field, []):
            rule(self)

    # --- Edges ---

    def _derive_sem1_start(self):
        # March 1st is always a holiday; search from the 2nd
        day = date(self.year, 3, 2)
        extra = self.variable_holiday_dates()
        while is_non_school_day(day, self.holidays, extra):
            day += timedelta(days=1)
        self._set_derived(AnchorField.SEM1_START, day)

    def _derive_winter_end(self):
        self._set_derived(AnchorField.WINTER_END, last_day_of_february(self.year + 1))

    def _derive_summer_ceremony(self):
        self._set_derived(AnchorField.SUMMER_CEREMONY, _shift(self.value(AnchorField.SUMMER_START), -1))

    def _derive_winter_ceremony(self):
        self._set_derived(AnchorField.WINTER_CEREMONY, _shift(self.value(AnchorField.WINTER_START), -1))

    def _derive_spring_ceremony(self):
        self._set_derived(AnchorField.SPRING_CEREMONY, _shift(self.value(AnchorField.SPRING_START), -1))

    def _derive_sem2_start(self):
        self._set_derived(AnchorField.SEM2_START, _shift(self.value(AnchorField.SUMMER_END), 1))

    def _derive_spring_sem_start(self):
        winter_end = self.value(AnchorField.WINTER_END)
        if not winter_end:
            return
        if winter_end == last_day_of_february(winter_end.year):
            self._set_derived(AnchorField.SPRING_SEM_START, None)
        else:
            self._set_derived(AnchorField.SPRING_SEM_START, winter_end + timedelta(days=1))

    def _derive_spring_end(self):
        spring_start = self.value(AnchorField.SPRING_START)
        if not spring_start:
            return
        self._set_derived(AnchorField.SPRING_END, last_day_of_february(spring_start.year))

    # --- Triggers ---

    def select_year(self, year: int):
        """Switches the context to a year and recomputes the year-based anchors."""
        self.year = int(year)
        self.holidays = self.engine.compute_holidays(self.year)
        self._derive_sem1_start()
        self._derive_winter_end()

    def edit(self, field: AnchorField, value: Optional[date]):
        """Direct user edit: the field becomes manual for good, dependents follow."""
        anchor = self.anchors[field]
        anchor.is_manual = True
        anchor.value = value
        self._cascade(field)

    def variable_holiday_dates(self) -> List[date]:
        return [h.day for h in self.variable_holidays if h.day]

    def add_variable_holiday(self, day: Optional[date] = None, name: str = ""):
        self.variable_holidays.append(VariableHoliday(day=day, name=name))
        self._derive_sem1_start()

    def update_variable_holiday(self, index: int, day: Optional[date] = None, name: Optional[str] = None):
        holiday = self.variable_holidays[index]
        holiday.day = day
        if name is not None:
            holiday.name = name
        self._derive_sem1_start()

    def remove_variable_holiday(self, index: int):
        del self.variable_holidays[index]
        self._derive_sem1_start()

    def add_major_event(self, name: str, start: Optional[date], end: Optional[date] = None):
        self.major_events.append(MajorEvent(name=name, start=start, end=end))

    def set_exam(self, code: str, start: Optional[date], end: Optional[date]):
        if code not in EXAM_DEFINITIONS:
            raise ValidationFailure(f"Unknown exam code: {code}")
        self.exams[code] = DateRange(start=start, end=end)

    # --- Load / flatten ---

    def load_rows(self, rows: List[BasicScheduleRow]):
        """
        Reloads the context from stored rows.

        Manual flags are reset. Holiday rows that match the computed holiday
        map are dropped (they are recomputed); the rest become variable holidays.
        """
        self.anchors = {f: ScheduleAnchor(field=f) for f in AnchorField}
        self.holidays = self.engine.compute_holidays(self.year)
        self.variable_holidays = []
        self.exams = {}
        self.major_events = []

        by_code = {code: (start_field, end_field) for code, _, _, start_field, end_field in ANCHOR_ROWS}
        for row in rows:
            if row.code:
                if row.type is ScheduleKind.EXAM:
                    if row.code in EXAM_DEFINITIONS:
                        self.exams[row.code] = DateRange(start=row.start_date, end=row.end_date)
                    continue
                fields = by_code.get(row.code)
                if not fields:
                    log.debug("Ignoring unknown system code %s", row.code)
                    continue
                start_field, end_field = fields
                self.anchors[start_field].value = row.start_date
                if end_field:
                    self.anchors[end_field].value = row.end_date
            elif row.type is ScheduleKind.HOLIDAY:
                if row.start_date not in self.holidays:
                    self.variable_holidays.append(VariableHoliday(day=row.start_date, name=row.name))
            elif row.type is ScheduleKind.EVENT:
                self.major_events.append(MajorEvent(start=row.start_date, end=row.end_date, name=row.name))

        self.variable_holidays.sort(key=lambda h: h.day)
        self.major_events.sort(key=lambda e: e.start)

    def to_rows(self) -> List[BasicScheduleRow]:
        """Flattens the context into basic_schedules rows for a replace-write."""
        rows: List[BasicScheduleRow] = []

        def add_row(kind, code, name, start, end=None, is_holiday=False):
            if not start:
                return
            end = end or start
            if end < start:
                raise ValidationFailure(f"{name}: end date {end} is before start date {start}")
            rows.append(BasicScheduleRow(
                academic_year=self.year, type=kind, code=code, name=name,
                start_date=start, end_date=end, is_holiday=is_holiday,
            ))

        # 1. Terms, vacations and ceremonies
        for code, kind, name, start_field, end_field in ANCHOR_ROWS:
            end = self.value(end_field) if end_field else None
            add_row(kind, code, name, self.value(start_field), end)

        # 2. Computed holidays
        for day, names in self.holidays.items():
            add_row(ScheduleKind.HOLIDAY, None, holiday_label(names), day, is_holiday=True)

        # 3. Variable holidays
        for holiday in self.variable_holidays:
            if holiday.day and holiday.name:
                add_row(ScheduleKind.HOLIDAY, None, holiday.name, holiday.day, is_holiday=True)

        # 4. Exams (both ends required)
        for code, title in EXAM_DEFINITIONS.items():
            period = self.exams.get(code)
            if period and period.start and period.end:
                add_row(ScheduleKind.EXAM, code, title, period.start, period.end)

        # 5. Major events
        for event in self.major_events:
            if event.start and event.name:
                add_row(ScheduleKind.EVENT, None, event.name, event.start, event.end)

        return rows

    # --- State snapshots ---

    def to_state(self) -> EditingState:
        return EditingState(
            academic_year=self.year,
            anchors={f: a.model_copy() for f, a in self.anchors.items()},
            holidays=dict(self.holidays),
            variable_holidays=[h.model_copy() for h in self.variable_holidays],
            exams={c: p.model_copy() for c, p in self.exams.items()},
            major_events=[e.model_copy() for e in self.major_events],
        )

    @classmethod
    def from_state(cls, state: EditingState, engine: Optional[HolidayRuleEngine] = None) -> "ScheduleDateGraph":
        graph = cls(state.academic_year, engine=engine)
        for field, anchor in state.anchors.items():
            graph.anchors[field] = ScheduleAnchor(field=field, value=anchor.value, is_manual=anchor.is_manual)
        graph.variable_holidays = [h.model_copy() for h in state.variable_holidays]
        graph.exams = {c: p.model_copy() for c, p in state.exams.items()}
        graph.major_events = [e.model_copy() for e in state.major_events]
        return graph

DEPENDENTS: Dict[AnchorField, List[Callable[[ScheduleDateGraph], None]]] = {
    AnchorField.SUMMER_START: [ScheduleDateGraph._derive_summer_ceremony],
    AnchorField.SUMMER_END: [ScheduleDateGraph._derive_sem2_start],
    AnchorField.WINTER_START: [ScheduleDateGraph._derive_winter_ceremony],
    AnchorField.WINTER_END: [ScheduleDateGraph._derive_spring_sem_start],
    AnchorField.SPRING_START: [ScheduleDateGraph._derive_spring_ceremony, ScheduleDateGraph._derive_spring_end],
}
