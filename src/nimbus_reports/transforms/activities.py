"""Shift activity rows: TT activity changes and shifts with no activity."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from ..odata_client.models import ActivityHistoryEntry, ScheduleShift
from .formatting import format_date, format_datetime, format_time, sort_stamp
from .lookups import LookupTables, schedule_period
from .rows import ActivityChangeRow, MissingActivityRow


@dataclass(frozen=True)
class ActivityChange:
    """Who moved a shift onto its current activity, and from what."""

    changed_by: int | None
    changed_at: datetime | None
    previous_activity_id: int | None = None


def analyze_activity_change(
    history: Iterable[ActivityHistoryEntry], current_activity_id: int | None
) -> ActivityChange | None:
    """
    Find the change that put the shift on its current activity.

    Walking newest to oldest, the change is the first entry holding the
    current activity whose next older entry holds a different one. When no
    such pair exists the newest entry is reported with no previous activity.
    """
    entries = sorted(
        (h for h in history if not h.deleted),
        key=lambda h: sort_stamp(h.inserted),
        reverse=True,
    )
    if not entries:
        return None

    for newer, older in zip(entries, entries[1:]):
        if newer.activity_type_id == current_activity_id and older.activity_type_id != current_activity_id:
            return ActivityChange(newer.inserted_by, newer.inserted, older.activity_type_id)

    latest = entries[0]
    return ActivityChange(latest.inserted_by, latest.inserted)


def shape_activity_row(shift: ScheduleShift, lookups: LookupTables) -> ActivityChangeRow:
    syllabus_plus = shift.syllabus_plus or ""
    is_tt = lookups.is_tt_activity(shift.activity_type_id)
    change = analyze_activity_change(shift.activity_history, shift.activity_type_id)

    changed_by = changed_date = previous = ""
    if change:
        changed_by = lookups.username(change.changed_by)
        changed_date = format_datetime(change.changed_at)
        previous = lookups.activity(change.previous_activity_id)

    return ActivityChangeRow(
        id=str(shift.id),
        shift_id=shift.id,
        shift_date=format_date(shift.start_time),
        shift_from=format_time(shift.start_time),
        shift_to=format_time(shift.finish_time),
        shift_description=shift.description or "",
        assigned_to=lookups.username(shift.user_id),
        activity=lookups.activity(shift.activity_type_id),
        previous_activity=previous,
        changed_by=changed_by,
        changed_date=changed_date,
        syllabus_plus=syllabus_plus,
        unit_code=shift.unit_code or "",
        location=lookups.schedule_location(shift.schedule),
        department=lookups.department(shift.department_id),
        schedule_id=shift.schedule_id,
        schedule_period=schedule_period(shift.schedule),
        is_tt_activity=is_tt,
        flagged=bool(syllabus_plus) and not is_tt,
        starts_at=sort_stamp(shift.start_time),
    )


def sort_activity_rows(rows: list[ActivityChangeRow]) -> list[ActivityChangeRow]:
    """Flagged first, then by start time."""
    return sorted(rows, key=lambda r: (not r.flagged, r.starts_at, r.shift_id))


def shape_missing_activity_row(shift: ScheduleShift, lookups: LookupTables) -> MissingActivityRow:
    return MissingActivityRow(
        id=str(shift.id),
        shift_id=shift.id,
        shift_date=format_date(shift.start_time),
        shift_from=format_time(shift.start_time),
        shift_to=format_time(shift.finish_time),
        shift_description=shift.description or "",
        assigned_to=lookups.username(shift.user_id),
        unit_code=shift.unit_code or "",
        location=lookups.schedule_location(shift.schedule),
        department=lookups.department(shift.department_id),
        schedule_id=shift.schedule_id,
        schedule_period=schedule_period(shift.schedule),
        starts_at=sort_stamp(shift.start_time),
    )


def activity_user_ids(shifts: Iterable[ScheduleShift]) -> set[int]:
    """Assigned users and activity changers, for one batched User lookup."""
    ids: set[int] = set()
    for shift in shifts:
        if shift.user_id is not None:
            ids.add(shift.user_id)
        ids.update(h.inserted_by for h in shift.activity_history if h.inserted_by is not None)
    return ids
