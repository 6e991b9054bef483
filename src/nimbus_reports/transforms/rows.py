"""Report row models.

Rows hold primitive values only, so they can go straight into a grid or a
spreadsheet. ``id`` is unique within one report result.
"""

from enum import Enum

from pydantic import BaseModel


class ValidationStatus(str, Enum):
    """Cost code validation outcome, in descending precedence."""

    INACTIVE = "inactive"
    MISSING_DELIMITER = "missing_delimiter"
    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"
    VALID = "valid"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    ValidationStatus.VALID: "Valid",
    ValidationStatus.EXPIRED: "Expired",
    ValidationStatus.NOT_YET_VALID: "Not Yet Valid",
    ValidationStatus.MISSING_DELIMITER: "Missing /",
    ValidationStatus.INACTIVE: "Inactive",
}


class CostCodeRow(BaseModel):
    id: int
    code: str = ""
    description: str = ""
    active: bool = False
    has_delimiter: bool = False
    valid_from: str = ""
    valid_to: str = ""
    is_expired: bool = False
    is_not_yet_valid: bool = False
    validation_status: ValidationStatus = ValidationStatus.VALID

    @property
    def is_valid(self) -> bool:
        return self.validation_status == ValidationStatus.VALID


class SecurityRoleRow(BaseModel):
    """One (user, security role, job role) combination."""

    id: str
    user_id: int
    username: str = ""
    full_name: str = ""
    payroll: str = ""
    active: bool = False
    rosterable: bool = False
    security_role: str = ""
    security_role_location: str = ""
    security_role_location_group: str = ""
    job_role: str = ""
    default_job_role: bool | None = None


class DeletedAgreementRow(BaseModel):
    """A shift/agreement link that was logically deleted."""

    id: str
    shift_id: int
    shift_description: str = ""
    shift_date: str = ""
    shift_from: str = ""
    shift_to: str = ""
    schedule_id: int | None = None
    department_id: int | None = None
    syllabus_plus: str = ""
    activity: str = ""
    agreement_id: int | None = None
    agreement: str = ""
    modified_by: str = ""
    modified_date: str = ""
    modified_at: str = ""


class EarlyApprovalRow(BaseModel):
    """A timesheet approval confirmed before its shift started."""

    id: str
    approval_id: int
    staff_name: str = ""
    staff_username: str = ""
    location: str = ""
    shift_date: str = ""
    shift_start: str = ""
    shift_finish: str = ""
    approved_at: str = ""
    approved_by: str = ""
    hours_before_shift: float = 0.0
    severe: bool = False
    hours: float | None = None
    notes: str = ""


class MissingJobRoleRow(BaseModel):
    """An active shift with no job role assigned."""

    id: str
    shift_id: int
    description: str = ""
    shift_date: str = ""
    shift_from: str = ""
    shift_to: str = ""
    hours: float | None = None
    staff_username: str = ""
    staff_name: str = ""
    location: str = ""
    schedule_id: int | None = None
    syllabus_plus: str = ""
    starts_at: str = ""


class ActivityChangeRow(BaseModel):
    """A timetabled shift and its activity; flagged when the activity is not a TT one."""

    id: str
    shift_id: int
    shift_date: str = ""
    shift_from: str = ""
    shift_to: str = ""
    shift_description: str = ""
    assigned_to: str = ""
    activity: str = ""
    previous_activity: str = ""
    changed_by: str = ""
    changed_date: str = ""
    syllabus_plus: str = ""
    unit_code: str = ""
    location: str = ""
    department: str = ""
    schedule_id: int | None = None
    schedule_period: str = ""
    is_tt_activity: bool = False
    flagged: bool = False
    starts_at: str = ""


class MissingActivityRow(BaseModel):
    """An active shift with no activity type."""

    id: str
    shift_id: int
    shift_date: str = ""
    shift_from: str = ""
    shift_to: str = ""
    shift_description: str = ""
    assigned_to: str = ""
    unit_code: str = ""
    location: str = ""
    department: str = ""
    schedule_id: int | None = None
    schedule_period: str = ""
    activity_status: str = "Missing"
    starts_at: str = ""


class ChangeHistoryRow(BaseModel):
    """One saved revision of a shift."""

    id: str
    history_id: int
    shift_id: int | None = None
    shift_description: str = ""
    shift_date: str = ""
    shift_from: str = ""
    shift_to: str = ""
    change_date: str = ""
    changed_by: str = ""
    allocated_to: str = ""
    activity: str = ""
    location: str = ""
    department: str = ""
    schedule_id: int | None = None
    schedule_period: str = ""
    was_deleted: bool = False
    changed_at: str = ""
