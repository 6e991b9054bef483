"""Shift rows for the missing job roles report."""

from typing import TypeVar

from ..odata_client.models import ScheduleShift
from .formatting import format_date, format_time, sort_stamp
from .rows import MissingActivityRow, MissingJobRoleRow

ShiftRowT = TypeVar("ShiftRowT", MissingJobRoleRow, MissingActivityRow)


def shape_missing_job_role_row(shift: ScheduleShift) -> MissingJobRoleRow:
    user = shift.user
    schedule = shift.schedule
    location = schedule.location if schedule else None

    return MissingJobRoleRow(
        id=str(shift.id),
        shift_id=shift.id,
        description=shift.description or "",
        shift_date=format_date(shift.start_time),
        shift_from=format_time(shift.start_time),
        shift_to=format_time(shift.finish_time),
        hours=shift.hours,
        staff_username=(user.username or "") if user else "",
        staff_name=user.full_name if user else "",
        location=(location.description or "") if location else "",
        schedule_id=shift.schedule_id,
        syllabus_plus=shift.syllabus_plus or "",
        starts_at=sort_stamp(shift.start_time),
    )


def sort_by_start(rows: list[ShiftRowT]) -> list[ShiftRowT]:
    return sorted(rows, key=lambda r: (r.starts_at, r.shift_id))
