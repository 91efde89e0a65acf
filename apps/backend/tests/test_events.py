import pytest
import unicodedata
from datetime import date

from models.schemas import BasicScheduleRow, Department, DisplayKind, ScheduleKind, ScheduleRow
from services.calendar_view import OTHER_BUCKET, day_cells, is_red_day
from services.events import FIXED_OBSERVANCE_DAYS, build_event_model, expand_days, normalize_title

@pytest.fixture
def departments():
    return [
        Department(id=2, academic_year=2025, dept_name="연구부", dept_color="#0ea5e9", sort_order=1),
        Department(id=1, academic_year=2025, dept_name="교무부", dept_color="#3b82f6", sort_order=0),
    ]

@pytest.fixture
def basic_rows():
    return [
        BasicScheduleRow(academic_year=2025, type=ScheduleKind.HOLIDAY, name="어린이날, 부처님오신날",
                         start_date=date(2025, 5, 5), end_date=date(2025, 5, 5), is_holiday=True),
        BasicScheduleRow(academic_year=2025, type=ScheduleKind.EXAM, code="EXAM_1_1", name="1학기 1차지필",
                         start_date=date(2025, 4, 28), end_date=date(2025, 4, 30)),
        BasicScheduleRow(academic_year=2025, type=ScheduleKind.EVENT, name="PTA 총회",
                         start_date=date(2026, 3, 15), end_date=date(2026, 3, 15)),
    ]

def schedule(id, title, start, end=None, dept_id=None):
    return ScheduleRow(id=id, title=title, start_date=start, end_date=end, dept_id=dept_id)

def test_normalize_title():
    assert normalize_title("PTA 총회") == normalize_title("pta_총회!")
    assert normalize_title("  Sports   Day ") == "sportsday"
    assert normalize_title(None) == ""

def test_expand_days_is_inclusive_and_capped():
    assert expand_days(date(2025, 4, 28), date(2025, 4, 30)) == [date(2025, 4, 28), date(2025, 4, 29), date(2025, 4, 30)]
    assert expand_days(date(2025, 4, 28)) == [date(2025, 4, 28)]
    assert expand_days(date(2025, 5, 1), date(2025, 4, 30)) == []
    assert len(expand_days(date(2025, 1, 1), date(2027, 1, 1))) == 365

def test_duplicate_is_suppressed_only_on_matching_day(basic_rows, departments):
    rows = [schedule(10, "pta 총회", date(2026, 3, 15), date(2026, 3, 16), dept_id=1)]
    model = build_event_model(basic_rows, rows, FIXED_OBSERVANCE_DAYS, departments, 2025)

    assert date(2026, 3, 15) not in model.schedule_by_date_and_dept
    events = model.schedule_by_date_and_dept[date(2026, 3, 16)][1].events
    assert [e.schedule_id for e in events] == [10]

def test_matching_title_on_other_day_is_kept(basic_rows, departments):
    rows = [schedule(11, "PTA 총회", date(2026, 3, 20), dept_id=1)]
    model = build_event_model(basic_rows, rows, FIXED_OBSERVANCE_DAYS, departments, 2025)
    assert date(2026, 3, 20) in model.schedule_by_date_and_dept

def test_observance_title_suppresses_department_copy(departments):
    rows = [schedule(12, "식목일", date(2025, 4, 5), dept_id=2)]
    model = build_event_model([], rows, FIXED_OBSERVANCE_DAYS, departments, 2025)
    assert date(2025, 4, 5) not in model.schedule_by_date_and_dept

def test_labels_and_red_days(basic_rows, departments):
    model = build_event_model(basic_rows, [], FIXED_OBSERVANCE_DAYS, departments, 2025)

    assert model.day_label_map[date(2025, 5, 5)] == ["어린이날, 부처님오신날"]
    assert model.day_label_map[date(2025, 4, 29)] == ["1학기 1차지필"]
    assert model.red_day_map[date(2025, 5, 5)] is True
    assert date(2025, 4, 29) not in model.red_day_map

    # Observances cover the previous and next year too
    assert model.day_label_map[date(2024, 4, 5)] == ["식목일"]
    assert model.day_label_map[date(2026, 4, 5)] == ["식목일"]
    assert date(2025, 4, 5) not in model.red_day_map

def test_display_kinds(basic_rows, departments):
    model = build_event_model(basic_rows, [], FIXED_OBSERVANCE_DAYS, departments, 2025)

    holiday = next(e for e in model.background_events if e.start == date(2025, 5, 5))
    assert holiday.kind is DisplayKind.BACKGROUND_HOLIDAY
    assert holiday.is_background
    exam_days = [e for e in model.background_events if e.label == "1학기 1차지필"]
    assert len(exam_days) == 3
    assert all(e.kind is DisplayKind.HEADER_LABEL for e in exam_days)

    assert len(model.label_events) == 3 * len(FIXED_OBSERVANCE_DAYS)
    assert all(not e.is_background for e in model.label_events)

def test_grouping_follows_sort_order_with_other_last(departments):
    day = date(2025, 6, 11)
    rows = [
        schedule(20, "외부 행사", day, dept_id=99),
        schedule(21, "연구 협의회", day, dept_id=2),
        schedule(22, "학적 점검", day, dept_id=1),
        schedule(23, "미지정", day),
    ]
    model = build_event_model([], rows, {}, departments, 2025)
    groups = model.schedule_by_date_and_dept[day]

    assert list(groups) == [1, 2, OTHER_BUCKET]
    assert [e.schedule_id for e in groups[OTHER_BUCKET].events] == [20, 23]
    assert groups[1].events[0].background_color == "#3b82f6"
    assert groups[OTHER_BUCKET].info.dept_name == "기타"

def test_multi_day_event_keeps_its_range(departments):
    rows = [schedule(30, "수련회", date(2025, 5, 21), date(2025, 5, 23), dept_id=2)]
    model = build_event_model([], rows, {}, departments, 2025)
    days = [d for d in model.schedule_by_date_and_dept]
    assert days == [date(2025, 5, 21), date(2025, 5, 22), date(2025, 5, 23)]
    event = model.schedule_by_date_and_dept[date(2025, 5, 22)][2].events[0]
    assert (event.start, event.end) == (date(2025, 5, 21), date(2025, 5, 23))

def test_day_cells(basic_rows, departments):
    rows = [schedule(40, "교직원 연수", date(2025, 4, 7), dept_id=1)]
    model = build_event_model(basic_rows, rows, FIXED_OBSERVANCE_DAYS, departments, 2025)
    cells = day_cells(model, date(2025, 4, 5), date(2025, 4, 7))

    assert [c.day for c in cells] == [date(2025, 4, 5), date(2025, 4, 6), date(2025, 4, 7)]
    # 2025-04-05 is a Saturday carrying a label
    assert cells[0].labels == ["식목일"]
    assert cells[0].is_red
    assert is_red_day(model, date(2025, 4, 5))
    assert not cells[1].is_red
    assert cells[2].groups[0].events[0].title == "교직원 연수"

def test_normalize_title_canonicalizes_unicode():
    decomposed = unicodedata.normalize("NFD", "학부모총회")
    assert decomposed != "학부모총회"
    assert normalize_title(decomposed) == normalize_title("학부모 총회")
    assert normalize_title("Straße-Fest") == normalize_title("STRASSE FEST")

def test_decomposed_title_is_suppressed(departments):
    basic = [BasicScheduleRow(academic_year=2025, type=ScheduleKind.EVENT, name="학부모 총회",
                              start_date=date(2025, 3, 20), end_date=date(2025, 3, 20))]
    rows = [schedule(50, unicodedata.normalize("NFD", "학부모총회"), date(2025, 3, 20), dept_id=1)]
    model = build_event_model(basic, rows, {}, departments, 2025)
    assert date(2025, 3, 20) not in model.schedule_by_date_and_dept

def test_punctuation_only_titles_never_match(departments):
    basic = [BasicScheduleRow(academic_year=2025, type=ScheduleKind.EVENT, name="...",
                              start_date=date(2025, 3, 21), end_date=date(2025, 3, 21))]
    rows = [schedule(51, "-", date(2025, 3, 21), dept_id=1)]
    model = build_event_model(basic, rows, {}, departments, 2025)
    events = model.schedule_by_date_and_dept[date(2025, 3, 21)][1].events
    assert [e.schedule_id for e in events] == [51]
