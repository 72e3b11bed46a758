"""Progress derivation from department tracking rows.

Everything here is a pure function over rows that expose ``department_name``
and ``status`` (plus hours and weights for ``summarize``), so it works the
same on ORM rows and on plain objects.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from goldworks.models.department import DEPARTMENT_ORDER, DepartmentName, DepartmentStatus

# Required counts per department: (form fields, photos, files)
DEPARTMENT_REQUIREMENTS = {
    DepartmentName.CAD: (6, 3, 1),
    DepartmentName.PRINT: (5, 2, 0),
    DepartmentName.CASTING: (6, 2, 0),
    DepartmentName.FILLING: (5, 2, 0),
    DepartmentName.MEENA: (5, 3, 0),
    DepartmentName.POLISH_1: (4, 2, 0),
    DepartmentName.SETTING: (5, 3, 0),
    DepartmentName.POLISH_2: (4, 2, 0),
    DepartmentName.ADDITIONAL: (4, 2, 0),
}


def _status(row: Any) -> DepartmentStatus:
    return DepartmentStatus(row.status)


def _completed_departments(rows: Iterable[Any]) -> set:
    return {
        DepartmentName(row.department_name)
        for row in rows
        if _status(row) == DepartmentStatus.COMPLETED
    }


def current_department(rows: Sequence[Any]) -> Optional[DepartmentName]:
    """Department the order is currently at, or None once all are completed."""
    by_sequence = sorted(rows, key=lambda row: DEPARTMENT_ORDER.index(DepartmentName(row.department_name)))

    for row in by_sequence:
        if _status(row) == DepartmentStatus.IN_PROGRESS:
            return DepartmentName(row.department_name)

    completed = _completed_departments(by_sequence)
    if all(dept in completed for dept in DEPARTMENT_ORDER):
        return None

    if completed:
        last_index = max(DEPARTMENT_ORDER.index(dept) for dept in completed)
        if last_index < len(DEPARTMENT_ORDER) - 1:
            return DEPARTMENT_ORDER[last_index + 1]

    # Nothing progressed yet, or the last department finished out of order
    for dept in DEPARTMENT_ORDER:
        if dept not in completed:
            return dept
    return None


def completion_percentage(rows: Iterable[Any]) -> int:
    """Completed departments over the full fixed sequence, as a whole percentage."""
    completed = len(_completed_departments(rows))
    return round(100 * completed / len(DEPARTMENT_ORDER))


def _filled_fields(form_data: Mapping[str, Any]) -> int:
    return sum(1 for value in form_data.values() if value is not None and value != "")


def department_progress(department: DepartmentName, work_data: Optional[Mapping[str, Any]]) -> int:
    """Share of requirement categories (fields, photos, files) satisfied, 0..100."""
    requirements = DEPARTMENT_REQUIREMENTS.get(DepartmentName(department))
    if not requirements or not work_data:
        return 0

    fields = _filled_fields(work_data.get("form_data") or {})
    photos = len(work_data.get("uploaded_photos") or [])
    files = len(work_data.get("uploaded_files") or [])

    total = 0
    done = 0
    for required, actual in zip(requirements, (fields, photos, files)):
        if required > 0:
            total += 1
            if actual >= required:
                done += 1
    return round(100 * done / total) if total else 0


def duration_hours(row: Any) -> Optional[float]:
    if row.started_at and row.completed_at:
        return round((row.completed_at - row.started_at).total_seconds() / 3600, 2)
    return None


def summarize(rows: Sequence[Any]) -> Dict[str, Any]:
    """Order-level summary used by the department listing."""
    estimated = sum(row.estimated_hours or 0 for row in rows)
    actual = sum(duration_hours(row) or 0 for row in rows)
    losses = [row.gold_loss for row in rows if row.gold_loss is not None]
    current = current_department(rows)
    return {
        "total_departments": len(DEPARTMENT_ORDER),
        "completed_departments": len(_completed_departments(rows)),
        "current_department": current.value if current else None,
        "completion_percentage": completion_percentage(rows),
        "total_estimated_hours": estimated or None,
        "total_actual_hours": round(actual, 2) or None,
        "total_gold_loss": round(sum(losses), 3) if losses else None,
    }


def blocking_department(rows: Iterable[Any], department: DepartmentName) -> Optional[DepartmentName]:
    """First earlier department that is not completed yet, if any."""
    completed = _completed_departments(rows)
    for dept in DEPARTMENT_ORDER[:DEPARTMENT_ORDER.index(DepartmentName(department))]:
        if dept not in completed:
            return dept
    return None


def incomplete_departments(rows: Iterable[Any]) -> List[DepartmentName]:
    completed = _completed_departments(rows)
    return [dept for dept in DEPARTMENT_ORDER if dept not in completed]
