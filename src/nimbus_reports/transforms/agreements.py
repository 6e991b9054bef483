"""Deleted shift/agreement links, pulled out of the nested shift expansion."""

from collections.abc import Iterable

from ..odata_client.models import ScheduleShift
from .formatting import format_date, format_datetime, format_time, sort_stamp
from .rows import DeletedAgreementRow


def user_label(user_id: int | None, usernames: dict[int, str] | None = None) -> str:
    """Username for an id, ``User <id>`` when unresolved, blank when unset."""
    if user_id is None:
        return ""
    if usernames and usernames.get(user_id):
        return usernames[user_id]
    return f"User {user_id}"


def extract_deleted_agreements(
    shifts: Iterable[ScheduleShift], usernames: dict[int, str] | None = None
) -> list[DeletedAgreementRow]:
    """
    One row per deleted agreement link on each shift.

    Shift details come from the same record the link was expanded under, so
    no second query is needed. Links that are not deleted are skipped even
    when the server-side expansion filter let them through.
    """
    rows: list[DeletedAgreementRow] = []
    for shift in shifts:
        for link in shift.agreements:
            if not link.deleted:
                continue
            link_id = link.id if link.id is not None else link.agreement_id
            rows.append(
                DeletedAgreementRow(
                    id=f"{shift.id}-{link_id}",
                    shift_id=shift.id,
                    shift_description=shift.description or "",
                    shift_date=format_date(shift.start_time),
                    shift_from=format_time(shift.start_time),
                    shift_to=format_time(shift.finish_time),
                    schedule_id=shift.schedule_id,
                    department_id=shift.department_id,
                    syllabus_plus=shift.syllabus_plus or "",
                    activity=shift.activity_group or "",
                    agreement_id=link.agreement_id,
                    agreement=(link.agreement.description or "") if link.agreement else "",
                    modified_by=user_label(link.updated_by, usernames),
                    modified_date=format_datetime(link.updated),
                    modified_at=sort_stamp(link.updated),
                )
            )
    return rows


def modifier_ids(shifts: Iterable[ScheduleShift]) -> set[int]:
    """Ids of users who deleted agreement links, for a username lookup."""
    return {
        link.updated_by
        for shift in shifts
        for link in shift.agreements
        if link.deleted and link.updated_by is not None
    }


def sort_deleted_agreements(rows: list[DeletedAgreementRow]) -> list[DeletedAgreementRow]:
    """Most recently modified first, ties by shift id."""
    by_shift = sorted(rows, key=lambda r: r.shift_id)
    return sorted(by_shift, key=lambda r: r.modified_at, reverse=True)
