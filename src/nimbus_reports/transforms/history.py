"""Shift change history rows."""

from collections.abc import Iterable

from ..odata_client.models import ShiftHistory
from .formatting import format_date, format_datetime, format_time, sort_stamp
from .lookups import LookupTables, schedule_period
from .rows import ChangeHistoryRow


def history_location_id(record: ShiftHistory) -> int | None:
    """Location of the shift's schedule, when the shift was expanded."""
    shift = record.shift
    if shift is None or shift.schedule is None:
        return None
    return shift.schedule.location_id


def shape_change_history_row(record: ShiftHistory, lookups: LookupTables) -> ChangeHistoryRow:
    """
    Shape one history snapshot.

    Shift details come from the snapshot itself, so each row shows the shift
    as it was saved. Location and schedule period come from the shift's
    current schedule.
    """
    schedule = record.shift.schedule if record.shift else None
    schedule_id = record.schedule_id
    if schedule_id is None and record.shift:
        schedule_id = record.shift.schedule_id

    return ChangeHistoryRow(
        id=str(record.id),
        history_id=record.id,
        shift_id=record.schedule_shift_id,
        shift_description=record.description or "",
        shift_date=format_date(record.start_time),
        shift_from=format_time(record.start_time),
        shift_to=format_time(record.finish_time),
        change_date=format_datetime(record.inserted),
        changed_by=lookups.display_name(record.inserted_by),
        allocated_to=lookups.display_name(record.user_id),
        activity=lookups.activity(record.activity_type_id),
        location=lookups.schedule_location(schedule),
        department=lookups.department(record.department_id),
        schedule_id=schedule_id,
        schedule_period=schedule_period(schedule),
        was_deleted=record.deleted,
        changed_at=sort_stamp(record.inserted),
    )


def history_user_ids(records: Iterable[ShiftHistory]) -> set[int]:
    """Editors and allocated users, for one batched User lookup."""
    ids: set[int] = set()
    for record in records:
        ids.update(i for i in (record.inserted_by, record.user_id) if i is not None)
    return ids


def sort_change_history(rows: list[ChangeHistoryRow]) -> list[ChangeHistoryRow]:
    """Most recent change first, ties by history id descending."""
    return sorted(rows, key=lambda r: (r.changed_at, r.history_id), reverse=True)
