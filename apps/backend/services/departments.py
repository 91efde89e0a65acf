from typing import List, Tuple

from models.schemas import Department, DepartmentInput, SpecialDepartmentInput
from services.errors import ValidationFailure

# Fixed identities; these always exist for a year, possibly inactive
SPECIAL_DEPARTMENTS = [
    {"id": "admin_office", "name": "행정실", "color": "#64748b"},
    {"id": "advanced_teacher", "name": "수석", "color": "#8b5cf6"},
    {"id": "vice_principal", "name": "교감", "color": "#71717a"},
    {"id": "principal", "name": "교장", "color": "#4b5563"},
]
SPECIAL_SORT_BASE = 100

SAFE_COLORS = [
    '#3b82f6', '#0ea5e9', '#06b6d4', '#14b8a6', '#10b981',
    '#64748b', '#6366f1', '#8b5cf6', '#71717a', '#4b5563',
]

def default_nickname(name: str) -> str:
    return name[:2]

SPECIAL_CODES = {s["id"] for s in SPECIAL_DEPARTMENTS}

def is_special(dept: Department) -> bool:
    return dept.code in SPECIAL_CODES

def split_departments(rows: List[Department]) -> Tuple[List[Department], List[Department]]:
    """Returns (general, special) keeping the incoming order."""
    general = [d for d in rows if not is_special(d)]
    special = [d for d in rows if is_special(d)]
    return general, special

def build_department_rows(
    academic_year: int,
    general: List[DepartmentInput],
    special: List[SpecialDepartmentInput],
) -> List[Department]:
    """
    Builds the department rows written for a year.

    General departments are numbered 0..N-1 and always active; unnamed
    entries are dropped. Every special department is written, active or not,
    so its colour and nickname survive being switched off.

    Raises:
        ValidationFailure: if two general departments share a name.
    """
    rows = []
    seen = set()
    for d in general:
        name = (d.name or "").strip()
        if not name:
            continue
        if name in seen:
            raise ValidationFailure(f"Duplicate department name: {name}")
        seen.add(name)
        index = len(rows)
        rows.append(Department(
            academic_year=academic_year,
            dept_name=name,
            dept_short=(d.nickname or "").strip() or default_nickname(name),
            dept_color=d.color or SAFE_COLORS[index % len(SAFE_COLORS)],
            sort_order=index,
            is_active=True,
        ))

    provided = {s.id: s for s in special}
    for i, fixed in enumerate(SPECIAL_DEPARTMENTS):
        entry = provided.get(fixed["id"])
        rows.append(Department(
            academic_year=academic_year,
            code=fixed["id"],
            dept_name=fixed["name"],
            dept_short=(entry.nickname if entry and entry.nickname else default_nickname(fixed["name"])),
            dept_color=(entry.color if entry and entry.color else fixed["color"]),
            sort_order=SPECIAL_SORT_BASE + i,
            is_active=entry.is_active if entry else False,
        ))
    return rows
