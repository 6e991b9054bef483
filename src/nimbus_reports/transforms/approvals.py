"""Lead time between a timesheet approval and the shift it approves."""

import math
from dataclasses import dataclass
from datetime import datetime

from ..odata_client.models import AttendanceApproval
from .agreements import user_label
from .formatting import as_utc, format_date, format_datetime, format_time
from .rows import EarlyApprovalRow

SEVERE_THRESHOLD_HOURS = 24.0


@dataclass(frozen=True)
class LeadTime:
    hours: float
    severe: bool


def compute_lead_time(confirmed: datetime, start: datetime) -> LeadTime:
    """
    Hours from approval to shift start, rounded half up to one decimal.

    Positive means the approval happened before the shift began. An approval
    a day or more ahead (after rounding) is flagged severe.
    """
    delta = as_utc(start) - as_utc(confirmed)
    # Tenths of an hour are 360 seconds; round half up, not half to even
    hours = math.floor(delta.total_seconds() / 360 + 0.5) / 10
    return LeadTime(hours=hours, severe=hours >= SEVERE_THRESHOLD_HOURS)


def approved_early(approval: AttendanceApproval) -> bool:
    """True when the approval was confirmed strictly before the shift start."""
    if approval.confirmed_utc is None or approval.start_time is None:
        return False
    return as_utc(approval.confirmed_utc) < as_utc(approval.start_time)


def build_early_approval_row(
    approval: AttendanceApproval, confirmer_names: dict[int, str] | None = None
) -> EarlyApprovalRow:
    """Shape an early approval; callers filter with :func:`approved_early` first."""
    lead = compute_lead_time(approval.confirmed_utc, approval.start_time)
    attendance = approval.attendance
    user = attendance.user if attendance else None
    schedule = attendance.schedule if attendance else None
    location = schedule.location if schedule else None

    return EarlyApprovalRow(
        id=str(approval.id),
        approval_id=approval.id,
        staff_name=user.full_name if user else "",
        staff_username=(user.username or "") if user else "",
        location=(location.description or "") if location else "",
        shift_date=format_date(approval.start_time),
        shift_start=format_time(approval.start_time),
        shift_finish=format_time(approval.finish_time),
        approved_at=format_datetime(approval.confirmed_utc),
        approved_by=user_label(approval.confirmed_by, confirmer_names),
        hours_before_shift=lead.hours,
        severe=lead.severe,
        hours=approval.hours,
        notes=approval.notes or "",
    )


def sort_early_approvals(rows: list[EarlyApprovalRow]) -> list[EarlyApprovalRow]:
    """Largest lead time first."""
    return sorted(rows, key=lambda r: r.hours_before_shift, reverse=True)
