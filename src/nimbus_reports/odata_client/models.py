"""Pydantic models for Nimbus OData entities.

Only the fields the reports read are declared; everything else in the
payload is ignored. Expanded navigation properties are optional because the
server omits them when the related record is missing.
"""

from datetime import datetime

from pydantic import BaseModel, Field

_CONFIG = {"populate_by_name": True, "extra": "ignore"}


class Described(BaseModel):
    """Any lookup entity that only matters for its description."""

    id: int | None = Field(default=None, alias="Id")
    description: str | None = Field(default=None, alias="Description")

    model_config = _CONFIG


class UserRef(BaseModel):
    """Expanded ``UserObject`` / confirmer reference."""

    id: int | None = Field(default=None, alias="Id")
    username: str | None = Field(default=None, alias="Username")
    forename: str | None = Field(default=None, alias="Forename")
    surname: str | None = Field(default=None, alias="Surname")
    payroll: str | None = Field(default=None, alias="Payroll")
    active: bool | None = Field(default=None, alias="Active")
    rosterable: bool | None = Field(default=None, alias="Rosterable")

    model_config = _CONFIG

    @property
    def full_name(self) -> str:
        return f"{self.forename or ''} {self.surname or ''}".strip()


# ==================== Cost codes ====================


class CostCentre(BaseModel):
    """A cost centre with its ad-hoc validity window."""

    id: int = Field(alias="Id")
    code: str | None = Field(default=None, alias="Code")
    description: str | None = Field(default=None, alias="Description")
    active: bool = Field(default=False, alias="Active")
    deleted: bool = Field(default=False, alias="Deleted")
    valid_from: str | None = Field(default=None, alias="adhoc_From")
    valid_to: str | None = Field(default=None, alias="adhoc_To")

    model_config = _CONFIG


# ==================== Users and roles ====================


class SecurityRoleAssignment(BaseModel):
    """A ``UserSecurityRole`` row expanded under a user."""

    id: int | None = Field(default=None, alias="Id")
    security_role_id: int | None = Field(default=None, alias="SecurityRoleID")
    active: bool = Field(default=True, alias="Active")
    deleted: bool = Field(default=False, alias="Deleted")
    security_role: Described | None = Field(default=None, alias="SecurityRole")
    location: Described | None = Field(default=None, alias="LocationObject")
    location_group: Described | None = Field(default=None, alias="LocationGroupObject")

    model_config = _CONFIG


class JobRoleAssignment(BaseModel):
    """A ``UserJobRole`` row expanded under a user."""

    id: int | None = Field(default=None, alias="Id")
    job_role_id: int | None = Field(default=None, alias="JobRoleID")
    default_role: bool = Field(default=False, alias="DefaultRole")
    active: bool = Field(default=True, alias="Active")
    deleted: bool = Field(default=False, alias="Deleted")
    job_role: Described | None = Field(default=None, alias="JobRole")

    model_config = _CONFIG


class UserWithRoles(UserRef):
    """A user with active security-role and job-role assignments expanded."""

    id: int = Field(alias="Id")
    security_roles: list[SecurityRoleAssignment] = Field(
        default_factory=list, alias="UserSecurityRoleList"
    )
    job_roles: list[JobRoleAssignment] = Field(default_factory=list, alias="UserJobRoleList")


# ==================== Shifts and agreements ====================


class ScheduleRef(BaseModel):
    """Expanded ``Schedule`` with its location."""

    id: int | None = Field(default=None, alias="Id")
    location_id: int | None = Field(default=None, alias="LocationID")
    start_date: str | None = Field(default=None, alias="StartDate")
    end_date: str | None = Field(default=None, alias="EndDate")
    location: Described | None = Field(default=None, alias="Location")

    model_config = _CONFIG


class ShiftAgreementLink(BaseModel):
    """A ``ScheduleShiftAgreement`` edge between a shift and an agreement."""

    id: int | None = Field(default=None, alias="Id")
    agreement_id: int | None = Field(default=None, alias="AgreementID")
    deleted: bool = Field(default=False, alias="Deleted")
    updated: datetime | None = Field(default=None, alias="Updated")
    updated_by: int | None = Field(default=None, alias="UpdatedBy")
    agreement: Described | None = Field(default=None, alias="Agreement")

    model_config = _CONFIG


class ActivityHistoryEntry(BaseModel):
    """A ``ScheduleShiftActivityHistory`` row: the activity a shift held from ``Inserted``."""

    id: int | None = Field(default=None, alias="Id")
    schedule_shift_id: int | None = Field(default=None, alias="ScheduleShiftID")
    activity_type_id: int | None = Field(default=None, alias="ActivityTypeID")
    inserted: datetime | None = Field(default=None, alias="Inserted")
    inserted_by: int | None = Field(default=None, alias="InsertedBy")
    deleted: bool = Field(default=False, alias="Deleted")

    model_config = _CONFIG


class ScheduleShift(BaseModel):
    """A scheduled shift, optionally with expanded schedule, user and agreements."""

    id: int = Field(alias="Id")
    description: str | None = Field(default=None, alias="Description")
    start_time: datetime | None = Field(default=None, alias="StartTime")
    finish_time: datetime | None = Field(default=None, alias="FinishTime")
    hours: float | None = Field(default=None, alias="Hours")
    deleted: bool = Field(default=False, alias="Deleted")
    updated: datetime | None = Field(default=None, alias="Updated")
    updated_by: int | None = Field(default=None, alias="UpdatedBy")
    user_id: int | None = Field(default=None, alias="UserID")
    job_role_id: int | None = Field(default=None, alias="JobRoleID")
    activity_type_id: int | None = Field(default=None, alias="ActivityTypeID")
    schedule_id: int | None = Field(default=None, alias="ScheduleID")
    department_id: int | None = Field(default=None, alias="DepartmentID")
    syllabus_plus: str | None = Field(default=None, alias="adhoc_SyllabusPlus")
    unit_code: str | None = Field(default=None, alias="adhoc_UnitCode")
    activity_group: str | None = Field(default=None, alias="adhoc_ActivityGroup")
    schedule: ScheduleRef | None = Field(default=None, alias="Schedule")
    user: UserRef | None = Field(default=None, alias="UserObject")
    agreements: list[ShiftAgreementLink] = Field(
        default_factory=list, alias="ScheduleShiftAgreementList"
    )
    activity_history: list[ActivityHistoryEntry] = Field(
        default_factory=list, alias="ScheduleShiftActivityHistoryList"
    )

    model_config = _CONFIG


class ShiftHistory(BaseModel):
    """A ``ScheduleShiftHistory`` snapshot, written each time a shift is saved."""

    id: int = Field(alias="Id")
    schedule_shift_id: int | None = Field(default=None, alias="ScheduleShiftID")
    description: str | None = Field(default=None, alias="Description")
    start_time: datetime | None = Field(default=None, alias="StartTime")
    finish_time: datetime | None = Field(default=None, alias="FinishTime")
    hours: float | None = Field(default=None, alias="Hours")
    deleted: bool = Field(default=False, alias="Deleted")
    inserted: datetime | None = Field(default=None, alias="Inserted")
    inserted_by: int | None = Field(default=None, alias="InsertedBy")
    user_id: int | None = Field(default=None, alias="UserID")
    activity_type_id: int | None = Field(default=None, alias="ActivityTypeID")
    schedule_id: int | None = Field(default=None, alias="ScheduleID")
    department_id: int | None = Field(default=None, alias="DepartmentID")
    shift: ScheduleShift | None = Field(default=None, alias="ScheduleShiftObject")

    model_config = _CONFIG


# ==================== Approvals ====================


class AttendanceRef(BaseModel):
    """Expanded ``ScheduleShiftAttendanceObject``."""

    id: int | None = Field(default=None, alias="Id")
    user_id: int | None = Field(default=None, alias="UserID")
    schedule_id: int | None = Field(default=None, alias="ScheduleID")
    start_time: datetime | None = Field(default=None, alias="StartTime")
    finish_time: datetime | None = Field(default=None, alias="FinishTime")
    user: UserRef | None = Field(default=None, alias="UserObject")
    schedule: ScheduleRef | None = Field(default=None, alias="Schedule")

    model_config = _CONFIG


class AttendanceApproval(BaseModel):
    """A ``ScheduleShiftAttendanceApproval`` (status 3 = approved)."""

    id: int = Field(alias="Id")
    status: int | None = Field(default=None, alias="Status")
    confirmed_utc: datetime | None = Field(default=None, alias="ConfirmedUTC")
    confirmed_by: int | None = Field(default=None, alias="ConfirmedBy")
    start_time: datetime | None = Field(default=None, alias="StartTime")
    finish_time: datetime | None = Field(default=None, alias="FinishTime")
    hours: float | None = Field(default=None, alias="Hours")
    notes: str | None = Field(default=None, alias="Notes")
    attendance: AttendanceRef | None = Field(default=None, alias="ScheduleShiftAttendanceObject")

    model_config = _CONFIG
