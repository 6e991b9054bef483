"""Sheet catalogue for the UAT extract workbook.

Every sheet but ``Staff Profile`` carries the user's payroll number through
an expanded ``UserObject`` so rows can be matched across sheets.
"""

from ..odata_client.query import ODataExpand, ODataQuery
from ..transforms.sheets import SheetColumn, SheetSpec

SUMMARY_SHEET = "Summary"

_PAYROLL = ODataExpand(navigation="UserObject", select=["Payroll"])
_PAYROLL_COL = SheetColumn("Payroll", "Payroll", "UserObject.Payroll")
_USER_ID_COL = SheetColumn("UserID", "User ID")
_EFFECTIVE_COL = SheetColumn("EffectiveDate", "Effective Date", transform="date")
_ACTIVE_COL = SheetColumn("Active", "Active")


def _described(navigation: str, *extra: str) -> ODataExpand:
    return ODataExpand(navigation=navigation, select=["Description", *extra])


UAT_SHEETS: tuple[SheetSpec, ...] = (
    SheetSpec(
        name="Staff Profile",
        entity="User",
        select=(
            "Id", "Username", "Forename", "Surname", "Payroll", "Active", "Rosterable",
            "Email", "Phone", "DateOfBirth", "StartDate", "FinishDate",
        ),
        columns=(
            SheetColumn("Id", "ID"),
            SheetColumn("Username", "Username"),
            SheetColumn("Forename", "Forename"),
            SheetColumn("Surname", "Surname"),
            SheetColumn("FullName", "Full Name", ("Forename", "Surname"), transform="join"),
            SheetColumn("Payroll", "Payroll"),
            SheetColumn("Email", "Email"),
            SheetColumn("Phone", "Phone"),
            SheetColumn("DateOfBirth", "DOB", transform="date"),
            SheetColumn("StartDate", "Start Date", transform="date"),
            SheetColumn("FinishDate", "Finish Date", transform="date"),
            _ACTIVE_COL,
            SheetColumn("Rosterable", "Rosterable"),
        ),
    ),
    SheetSpec(
        name="Location",
        entity="UserLocation",
        select=("UserID", "LocationID", "Active"),
        expand=(_described("Location"), _PAYROLL),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("LocationID", "Location ID"),
            SheetColumn("Location", "Location", "Location.Description"),
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Employment Hours",
        entity="UserHours",
        select=("Id", "UserID", "Hours", "HoursType", "EffectiveDate", "Active"),
        expand=(_PAYROLL,),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("Hours", "Hours"),
            SheetColumn("HoursType", "Hours Type"),
            _EFFECTIVE_COL,
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Employment Type",
        entity="UserEmployment",
        select=("UserID", "EmploymentTypeID", "EffectiveDate", "Active"),
        expand=(_described("EmploymentType"), _PAYROLL),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("EmploymentTypeID", "Type ID"),
            SheetColumn("EmploymentType", "Employment Type", "EmploymentType.Description"),
            _EFFECTIVE_COL,
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Role",
        entity="UserJobRole",
        select=("Id", "UserID", "JobRoleID", "DefaultRole", "Active"),
        expand=(ODataExpand(navigation="JobRole"), _PAYROLL),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("JobRoleID", "Job Role ID"),
            SheetColumn("JobRole", "Job Role", "JobRole.Description"),
            SheetColumn("DefaultRole", "Default"),
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Pay",
        entity="UserPayRate",
        select=("UserID", "PayRateID", "PayRate", "EffectiveDate", "Active"),
        expand=(_described("PayRateObject"), _PAYROLL),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("PayRateID", "Pay Rate ID"),
            SheetColumn("PayRateName", "Pay Rate", "PayRateObject.Description"),
            SheetColumn("HourlyRate", "Hourly Rate", "PayRate"),
            _EFFECTIVE_COL,
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Variation",
        entity="UserPayRateVariation",
        select=("UserID", "AwardID", "PayRate", "JobRoleID", "EffectiveDate", "Active"),
        expand=(_described("AwardObject"), _described("JobRoleObject"), _PAYROLL),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("Award", "Award", "AwardObject.Description"),
            SheetColumn("VariationPayRate", "Pay Rate", "PayRate"),
            SheetColumn("JobRole", "Job Role", "JobRoleObject.Description"),
            _EFFECTIVE_COL,
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Agreements",
        entity="UserAgreement",
        select=("Id", "UserID", "AgreementID", "EffectiveDate", "Active"),
        expand=(ODataExpand(navigation="Agreement"), _PAYROLL),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("AgreementID", "Agreement ID"),
            SheetColumn("Agreement", "Agreement", "Agreement.Description"),
            _EFFECTIVE_COL,
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Skill",
        entity="UserSkill",
        select=("Id", "UserID", "SkillID", "Active"),
        expand=(ODataExpand(navigation="Skill"), _PAYROLL),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("SkillID", "Skill ID"),
            SheetColumn("Skill", "Skill", "Skill.Description"),
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Cycle",
        entity="UserCycle",
        select=("UserID", "CycleID", "EffectiveDate", "Active"),
        expand=(_described("CycleObject", "DaysInCycle"), _PAYROLL),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("CycleID", "Cycle ID"),
            SheetColumn("Cycle", "Cycle", "CycleObject.Description"),
            SheetColumn("DaysInCycle", "Days In Cycle", "CycleObject.DaysInCycle"),
            _EFFECTIVE_COL,
            _ACTIVE_COL,
        ),
    ),
    SheetSpec(
        name="Security",
        entity="UserSecurityRole",
        select=(
            "UserID", "SecurityRoleID", "LocationGroupID", "LocationID", "EffectiveDate", "Active",
        ),
        expand=(
            _described("SecurityRole"),
            _described("LocationGroupObject"),
            _described("LocationObject"),
            _PAYROLL,
        ),
        columns=(
            _PAYROLL_COL,
            _USER_ID_COL,
            SheetColumn("SecurityRoleID", "Role ID"),
            SheetColumn("SecurityRole", "Security Role", "SecurityRole.Description"),
            SheetColumn("LocationID", "Location ID"),
            SheetColumn("Location", "Location", "LocationObject.Description"),
            SheetColumn("LocationGroupID", "Loc Group ID"),
            SheetColumn("LocationGroup", "Location Group", "LocationGroupObject.Description"),
            _ACTIVE_COL,
        ),
    ),
)


def record_filter(active_only: bool) -> str:
    return "Active eq true and Deleted eq false" if active_only else "Deleted eq false"


def build_sheet_query(spec: SheetSpec, active_only: bool = True, page_size: int = 500) -> ODataQuery:
    """Query for one UAT sheet's entity."""
    return ODataQuery(
        entity=spec.entity,
        select=list(spec.select),
        expand=list(spec.expand),
        filter=spec.filter or record_filter(active_only),
        page_size=page_size,
    )
