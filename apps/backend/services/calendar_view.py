from datetime import date, timedelta
from typing import Dict, List, Union

from models.schemas import DayCell, Department, DepartmentGroup, DisplayEvent, EventModel

OTHER_BUCKET = "other"
OTHER_DEPARTMENT = Department(dept_name="기타", dept_short="기타", dept_color="#333333", sort_order=10**6)

def group_by_department(
    events_by_day: Dict[date, List[DisplayEvent]],
    departments: List[Department],
) -> Dict[date, Dict[Union[int, str], DepartmentGroup]]:
    """
    Groups each day's events by department.

    Groups follow the departments' sort order; events whose department is
    unknown land in the "other" bucket, which always comes last.
    """
    known = {d.id: d for d in departments if d.id is not None}
    rank = {d.id: i for i, d in enumerate(sorted(departments, key=lambda d: d.sort_order))}

    grouped = {}
    for day in sorted(events_by_day):
        groups: Dict[Union[int, str], DepartmentGroup] = {}
        for event in events_by_day[day]:
            key = event.dept_id if event.dept_id in known else OTHER_BUCKET
            if key not in groups:
                info = known[key] if key != OTHER_BUCKET else OTHER_DEPARTMENT
                groups[key] = DepartmentGroup(key=key, info=info)
            groups[key].events.append(event)

        ordered = sorted(groups, key=lambda k: rank.get(k, len(rank)))
        grouped[day] = {k: groups[k] for k in ordered}
    return grouped

def is_red_day(model: EventModel, day: date) -> bool:
    # Presentation rule: a labelled weekend date is shown red too
    if model.red_day_map.get(day):
        return True
    return bool(model.day_label_map.get(day)) and day.weekday() >= 5

def day_cells(model: EventModel, start: date, end: date) -> List[DayCell]:
    cells = []
    day = start
    while day <= end:
        cells.append(DayCell(
            day=day,
            labels=list(model.day_label_map.get(day, [])),
            is_red=is_red_day(model, day),
            groups=list(model.schedule_by_date_and_dept.get(day, {}).values()),
        ))
        day += timedelta(days=1)
    return cells
