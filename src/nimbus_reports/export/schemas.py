"""Column layouts for exported reports."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ..transforms.sheets import get_nested_value


class ColumnType(str, Enum):
    """How a column's cells are written."""

    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"


class ColumnSchema(BaseModel):
    """One exported column: which row field it reads and its header."""

    field: str = Field(description="Row attribute or dict key")
    title: str
    type: ColumnType = ColumnType.TEXT
    width: int | None = Field(default=None, description="Fixed width; auto-sized when unset")


def to_cell(value: Any) -> Any:
    """Convert a row value into something a spreadsheet cell can hold."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, Enum):
        return getattr(value, "label", value.value)
    return value


def to_records(rows: list[Any], columns: list[ColumnSchema]) -> list[dict[str, Any]]:
    """Project rows onto the columns, keyed by column title, in column order."""
    return [
        {col.title: to_cell(get_nested_value(row, col.field)) for col in columns} for row in rows
    ]


def columns_from_rows(rows: list[dict[str, Any]]) -> list[ColumnSchema]:
    """Plain text columns for dict rows that carry no schema."""
    if not rows:
        return []
    return [ColumnSchema(field=key, title=key) for key in rows[0]]


# Pre-defined layouts for the standard reports
COST_CODE_COLUMNS = [
    ColumnSchema(field="code", title="Cost Code"),
    ColumnSchema(field="description", title="Description"),
    ColumnSchema(field="validation_status", title="Status"),
    ColumnSchema(field="has_delimiter", title="Has /", type=ColumnType.BOOLEAN),
    ColumnSchema(field="valid_from", title="Valid From"),
    ColumnSchema(field="valid_to", title="Valid To"),
    ColumnSchema(field="active", title="Active", type=ColumnType.BOOLEAN),
]

SECURITY_ROLE_COLUMNS = [
    ColumnSchema(field="username", title="Username"),
    ColumnSchema(field="full_name", title="Name"),
    ColumnSchema(field="payroll", title="Payroll"),
    ColumnSchema(field="security_role", title="Security Role"),
    ColumnSchema(field="security_role_location", title="Location"),
    ColumnSchema(field="security_role_location_group", title="Location Group"),
    ColumnSchema(field="job_role", title="Job Role"),
    ColumnSchema(field="default_job_role", title="Default Job Role", type=ColumnType.BOOLEAN),
    ColumnSchema(field="rosterable", title="Rosterable", type=ColumnType.BOOLEAN),
    ColumnSchema(field="active", title="Active", type=ColumnType.BOOLEAN),
]

DELETED_AGREEMENT_COLUMNS = [
    ColumnSchema(field="shift_id", title="Shift ID", type=ColumnType.NUMBER),
    ColumnSchema(field="shift_description", title="Shift Description"),
    ColumnSchema(field="shift_date", title="Date"),
    ColumnSchema(field="shift_from", title="From"),
    ColumnSchema(field="shift_to", title="To"),
    ColumnSchema(field="schedule_id", title="Schedule ID", type=ColumnType.NUMBER),
    ColumnSchema(field="department_id", title="Department ID", type=ColumnType.NUMBER),
    ColumnSchema(field="syllabus_plus", title="Syllabus Plus"),
    ColumnSchema(field="activity", title="Activity"),
    ColumnSchema(field="agreement_id", title="Agreement ID", type=ColumnType.NUMBER),
    ColumnSchema(field="agreement", title="Agreement"),
    ColumnSchema(field="modified_by", title="Modified By"),
    ColumnSchema(field="modified_date", title="Modified Date"),
]

EARLY_APPROVAL_COLUMNS = [
    ColumnSchema(field="staff_name", title="Staff"),
    ColumnSchema(field="staff_username", title="Username"),
    ColumnSchema(field="location", title="Location"),
    ColumnSchema(field="shift_date", title="Shift Date"),
    ColumnSchema(field="shift_start", title="Shift Start"),
    ColumnSchema(field="shift_finish", title="Shift End"),
    ColumnSchema(field="approved_at", title="Approved At"),
    ColumnSchema(field="approved_by", title="Approved By"),
    ColumnSchema(field="hours_before_shift", title="Hours Early", type=ColumnType.NUMBER),
    ColumnSchema(field="severe", title="Severe", type=ColumnType.BOOLEAN),
    ColumnSchema(field="hours", title="Duration", type=ColumnType.NUMBER),
    ColumnSchema(field="notes", title="Notes"),
]

MISSING_JOB_ROLE_COLUMNS = [
    ColumnSchema(field="shift_id", title="Shift ID", type=ColumnType.NUMBER),
    ColumnSchema(field="description", title="Shift Description"),
    ColumnSchema(field="shift_date", title="Date"),
    ColumnSchema(field="shift_from", title="From"),
    ColumnSchema(field="shift_to", title="To"),
    ColumnSchema(field="hours", title="Hours", type=ColumnType.NUMBER),
    ColumnSchema(field="location", title="Location"),
    ColumnSchema(field="schedule_id", title="Schedule ID", type=ColumnType.NUMBER),
    ColumnSchema(field="syllabus_plus", title="Syllabus Plus"),
    ColumnSchema(field="staff_name", title="Assigned To"),
    ColumnSchema(field="staff_username", title="Username"),
]

ACTIVITY_COLUMNS = [
    ColumnSchema(field="shift_date", title="Date"),
    ColumnSchema(field="shift_from", title="From"),
    ColumnSchema(field="shift_to", title="To"),
    ColumnSchema(field="shift_description", title="Shift Description"),
    ColumnSchema(field="assigned_to", title="Assigned To"),
    ColumnSchema(field="activity", title="Activity"),
    ColumnSchema(field="previous_activity", title="Previous Activity"),
    ColumnSchema(field="changed_by", title="Changed By"),
    ColumnSchema(field="changed_date", title="Changed Date"),
    ColumnSchema(field="syllabus_plus", title="Syllabus Plus"),
    ColumnSchema(field="unit_code", title="Unit Code"),
    ColumnSchema(field="location", title="Location"),
    ColumnSchema(field="department", title="Department"),
    ColumnSchema(field="schedule_id", title="Schedule ID", type=ColumnType.NUMBER),
    ColumnSchema(field="schedule_period", title="Schedule Period"),
    ColumnSchema(field="is_tt_activity", title="TT Activity", type=ColumnType.BOOLEAN),
    ColumnSchema(field="flagged", title="Flagged", type=ColumnType.BOOLEAN),
]

MISSING_ACTIVITY_COLUMNS = [
    ColumnSchema(field="shift_date", title="Date"),
    ColumnSchema(field="shift_from", title="From"),
    ColumnSchema(field="shift_to", title="To"),
    ColumnSchema(field="shift_description", title="Shift Description"),
    ColumnSchema(field="assigned_to", title="Assigned Person"),
    ColumnSchema(field="unit_code", title="Unit Code"),
    ColumnSchema(field="location", title="Location"),
    ColumnSchema(field="department", title="Department"),
    ColumnSchema(field="schedule_id", title="Schedule ID", type=ColumnType.NUMBER),
    ColumnSchema(field="schedule_period", title="Schedule Period"),
    ColumnSchema(field="activity_status", title="Activity Status"),
]

CHANGE_HISTORY_COLUMNS = [
    ColumnSchema(field="shift_description", title="Shift Description"),
    ColumnSchema(field="shift_date", title="Date"),
    ColumnSchema(field="shift_from", title="From"),
    ColumnSchema(field="shift_to", title="To"),
    ColumnSchema(field="change_date", title="Changed"),
    ColumnSchema(field="changed_by", title="Changed By"),
    ColumnSchema(field="allocated_to", title="Allocated Person"),
    ColumnSchema(field="activity", title="Activity"),
    ColumnSchema(field="location", title="Location"),
    ColumnSchema(field="department", title="Department"),
    ColumnSchema(field="schedule_id", title="Schedule ID", type=ColumnType.NUMBER),
    ColumnSchema(field="schedule_period", title="Schedule Period"),
    ColumnSchema(field="was_deleted", title="Deleted", type=ColumnType.BOOLEAN),
]
