"""Report engine: fetch, decode, transform, sort and summarise."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..config import AppConfig, FetchConfig
from ..errors import ReportError, ReportPreconditionError
from ..export.schemas import (
    ACTIVITY_COLUMNS,
    CHANGE_HISTORY_COLUMNS,
    COST_CODE_COLUMNS,
    DELETED_AGREEMENT_COLUMNS,
    EARLY_APPROVAL_COLUMNS,
    MISSING_ACTIVITY_COLUMNS,
    MISSING_JOB_ROLE_COLUMNS,
    SECURITY_ROLE_COLUMNS,
    ColumnSchema,
    columns_from_rows,
)
from ..export.xlsx import SheetData
from ..odata_client import ODataClient
from ..odata_client.models import (
    AttendanceApproval,
    CostCentre,
    ScheduleShift,
    ShiftHistory,
    UserWithRoles,
)
from ..odata_client.query import ODataExpand, ODataQuery, and_filters, date_range_filter
from ..progress import ProgressChannel, ScopedProgress
from ..session import Session
from ..transforms import (
    LookupTables,
    RowIdSequence,
    approved_early,
    build_early_approval_row,
    cost_code_stats,
    extract_deleted_agreements,
    flatten_user_roles,
    shape_activity_row,
    shape_change_history_row,
    shape_missing_activity_row,
    shape_missing_job_role_row,
    shape_sheet_rows,
    sort_activity_rows,
    sort_change_history,
    sort_cost_codes,
    sort_deleted_agreements,
    sort_security_role_rows,
    validate_cost_code,
)
from ..transforms.activities import activity_user_ids
from ..transforms.agreements import modifier_ids
from ..transforms.approvals import sort_early_approvals
from ..transforms.history import history_location_id, history_user_ids
from ..transforms.security_roles import unique_usernames
from ..transforms.shifts import sort_by_start
from .filters import ReportFilters
from .uat import SUMMARY_SHEET, UAT_SHEETS, build_sheet_query

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
ClientFactory = Callable[[Session], ODataClient]

COST_CODES = "Cost_Code_Validation"
SECURITY_ROLES = "User_Security_Roles"
DELETED_AGREEMENTS = "Deleted_Agreements"
EARLY_APPROVALS = "Early_Approvals"
MISSING_JOB_ROLES = "Missing_Job_Roles"
UAT_EXTRACT = "UAT_Extract"
ACTIVITIES = "Activities"
MISSING_ACTIVITIES = "Missing_Activities"
CHANGE_HISTORY = "Change_History"

# Reference entities resolved client-side by the shift activity and history reports
LOOKUP_ENTITIES = ("Location", "Department", "ActivityType")

# Approval status 3 is "approved"
APPROVED_STATUS = 3


@dataclass
class ReportResult:
    """Result of a report run."""

    report_name: str
    rows: list[Any] = field(default_factory=list)
    columns: list[ColumnSchema] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)
    message: str = ""
    sheets: list[SheetData] = field(default_factory=list)
    filters_applied: str = ""
    duration_seconds: float = 0.0

    @property
    def is_multi_sheet(self) -> bool:
        return bool(self.sheets)

    @property
    def row_count(self) -> int:
        if self.sheets:
            return sum(len(sheet.rows) for sheet in self.sheets if sheet.name != SUMMARY_SHEET)
        return len(self.rows)


def decode_records(model: type[ModelT], records: list[dict[str, Any]], entity: str) -> list[ModelT]:
    """Validate raw records into *model*, skipping records that do not fit."""
    decoded: list[ModelT] = []
    skipped = 0
    for record in records:
        try:
            decoded.append(model.model_validate(record))
        except ValidationError as e:
            skipped += 1
            logger.warning(f"Skipping malformed {entity} record {record.get('Id')!r}: {e.error_count()} errors")
    if skipped:
        logger.warning(f"Skipped {skipped} of {len(records)} {entity} records")
    return decoded


def _schedule_location_clause(filters: ReportFilters) -> str | None:
    if filters.location_id is None:
        return None
    return f"Schedule/LocationID eq {filters.location_id}"


class ReportEngine:
    """
    Runs reports against one Nimbus session.

    Each ``run_*`` method checks its preconditions before any network call,
    fetches through a fresh :class:`ODataClient`, and returns a
    :class:`ReportResult`. Any failure after the preconditions is raised as
    a :class:`ReportError`; no partial rows are returned.
    """

    def __init__(
        self,
        session: Session | None,
        fetch: FetchConfig | None = None,
        progress: ProgressChannel | None = None,
        client_factory: ClientFactory | None = None,
        today: date | None = None,
    ):
        """
        Initialize the report engine.

        Args:
            session: Credentials; reports refuse to run without a complete one
            fetch: Paging and retry settings
            progress: Channel receiving progress events (a private one when omitted)
            client_factory: Builds the OData client (injectable for tests)
            today: Reference date for cost code validity
        """
        self.session = session
        self.fetch = fetch or FetchConfig()
        self.progress = progress or ProgressChannel()
        self._client_factory = client_factory
        self.today = today

    @classmethod
    def from_config(cls, config: AppConfig, progress: ProgressChannel | None = None) -> "ReportEngine":
        return cls(config.nimbus.to_session(), fetch=config.fetch, progress=progress)

    def _require_session(self) -> Session:
        if self.session is None:
            raise ReportPreconditionError("Not connected: no session configured")
        if not self.session.is_complete():
            raise ReportPreconditionError(
                f"Session is incomplete for {self.session.auth_mode.value} authentication"
            )
        return self.session

    def _client(self, session: Session) -> ODataClient:
        if self._client_factory:
            return self._client_factory(session)
        return ODataClient(
            session,
            max_attempts=self.fetch.max_retries,
            max_pages=self.fetch.max_pages,
            expand_page_size=self.fetch.expand_page_size,
            timeout=self.fetch.timeout_seconds,
        )

    async def _run(
        self,
        report_name: str,
        filters: ReportFilters,
        build: Callable[[ODataClient, ScopedProgress], Awaitable[ReportResult]],
    ) -> ReportResult:
        session = self._require_session()
        progress = self.progress.scoped(report_name)
        progress("start", f"Running {report_name} ({filters.get_description()})")
        start = time.monotonic()

        try:
            async with self._client(session) as client:
                result = await build(client, progress)
        except ReportError:
            raise
        except Exception as e:
            logger.error(f"{report_name} failed: {e}")
            error = ReportError.from_exception(e)
            progress("done", str(error))
            raise error from e

        result.filters_applied = filters.get_description()
        result.duration_seconds = time.monotonic() - start
        progress("done", result.message, result.row_count)
        return result

    async def _load_lookups(
        self, client: ODataClient, progress: ScopedProgress, user_ids: set[int]
    ) -> LookupTables:
        """Fetch the reference entities in full and the given users by id, concurrently."""
        progress("process", f"Loading lookups for {len(user_ids)} users...", len(user_ids))
        queries = {
            entity: ODataQuery(entity=entity, select=["Id", "Description"], page_size=self.fetch.page_size)
            for entity in LOOKUP_ENTITIES
        }
        reference, users = await asyncio.gather(
            client.fetch_many(queries),
            client.lookup_by_ids(
                "User", list(user_ids), select=["Id", "Username", "Forename", "Surname"]
            ),
        )
        return LookupTables.from_records(reference, users)

    # ==================== Connection ====================

    async def verify(self) -> bool:
        """Check the session can read from the OData API."""
        session = self._require_session()
        try:
            async with self._client(session) as client:
                return await client.test_connection()
        except Exception as e:
            raise ReportError.from_exception(e) from e

    # ==================== Cost codes ====================

    async def run_cost_codes(self, filters: ReportFilters | None = None) -> ReportResult:
        """
        Validate every cost centre.

        Honours ``active_only`` in the query and ``invalid_only`` on the rows.
        Summary counts rows per validation status.
        """
        filters = filters or ReportFilters(active_only=False)

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            query = ODataQuery(
                entity="CostCentre",
                filter=and_filters("Deleted eq false", "Active eq true" if filters.active_only else None),
                select=["Id", "Description", "Code", "Active", "Deleted", "adhoc_From", "adhoc_To"],
                orderby="Description",
                page_size=self.fetch.page_size,
            )
            records = await client.fetch_paged(query, progress=progress)

            progress("process", f"Validating {len(records)} cost codes...", len(records))
            rows = [
                validate_cost_code(cc, self.today)
                for cc in decode_records(CostCentre, records, "CostCentre")
            ]
            stats = cost_code_stats(rows)
            rows = sort_cost_codes(rows)
            if filters.invalid_only:
                rows = [r for r in rows if not r.is_valid]

            return ReportResult(
                report_name=COST_CODES,
                rows=rows,
                columns=COST_CODE_COLUMNS,
                summary=stats.as_dict(),
                message=f"Loaded {stats.total} cost codes ({stats.with_issues} with issues)",
            )

        return await self._run(COST_CODES, filters, build)

    # ==================== User security roles ====================

    async def run_security_roles(self, filters: ReportFilters | None = None) -> ReportResult:
        """
        One row per user x security role x job role.

        Summary carries the row count and the number of distinct usernames.
        """
        filters = filters or ReportFilters()

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            current = "Deleted eq false and Active eq true"
            query = ODataQuery(
                entity="User",
                filter=and_filters("Deleted eq false", "Active eq true" if filters.active_only else None),
                select=["Id", "Username", "Forename", "Surname", "Payroll", "Active", "Rosterable"],
                expand=[
                    ODataExpand(
                        navigation="UserSecurityRoleList",
                        select=["Id", "SecurityRoleID", "LocationID", "LocationGroupID", "Active", "Deleted"],
                        filter=current,
                        expand=[
                            ODataExpand(navigation="SecurityRole", select=["Description"]),
                            ODataExpand(navigation="LocationObject", select=["Description"]),
                            ODataExpand(navigation="LocationGroupObject", select=["Description"]),
                        ],
                    ),
                    ODataExpand(
                        navigation="UserJobRoleList",
                        select=["Id", "JobRoleID", "DefaultRole", "Active", "Deleted"],
                        filter=current,
                        expand=[ODataExpand(navigation="JobRole", select=["Description"])],
                    ),
                ],
                orderby="Username",
            )
            records = await client.fetch_with_expand(query, progress=progress)

            users = decode_records(UserWithRoles, records, "User")
            progress("process", f"Flattening roles for {len(users)} users...", len(users))
            sequence = RowIdSequence()
            rows = [row for user in users for row in flatten_user_roles(user, sequence)]
            if filters.rosterable_only:
                rows = [r for r in rows if r.rosterable]
            rows = sort_security_role_rows(rows)

            users_count = unique_usernames(rows)
            return ReportResult(
                report_name=SECURITY_ROLES,
                rows=rows,
                columns=SECURITY_ROLE_COLUMNS,
                summary={"rows": len(rows), "users": users_count},
                message=f"Loaded {len(rows)} role assignments for {users_count} users",
            )

        return await self._run(SECURITY_ROLES, filters, build)

    # ==================== Deleted agreements ====================

    async def run_deleted_agreements(self, filters: ReportFilters) -> ReportResult:
        """
        Agreement links deleted from shifts starting within the date range.

        Links come from the shifts' nested expansion; who deleted each link is
        resolved with one batched User lookup.
        """
        from_date, to_date = filters.require_date_range()

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            query = ODataQuery(
                entity="ScheduleShift",
                filter=and_filters(
                    date_range_filter("StartTime", from_date, to_date),
                    "ScheduleShiftAgreementList/any(a: a/Deleted eq true)",
                ),
                select=[
                    "Id", "Description", "StartTime", "FinishTime", "ScheduleID",
                    "DepartmentID", "adhoc_SyllabusPlus", "adhoc_ActivityGroup",
                ],
                expand=[
                    ODataExpand(
                        navigation="ScheduleShiftAgreementList",
                        select=["Id", "AgreementID", "Deleted", "Updated", "UpdatedBy"],
                        filter="Deleted eq true",
                        expand=[ODataExpand(navigation="Agreement", select=["Description"])],
                    )
                ],
                orderby="StartTime",
            )
            records = await client.fetch_with_expand(query, progress=progress)
            shifts = decode_records(ScheduleShift, records, "ScheduleShift")

            ids = modifier_ids(shifts)
            usernames: dict[int, str] = {}
            if ids:
                progress("process", f"Resolving {len(ids)} users...", len(ids))
                users = await client.lookup_by_ids("User", list(ids), select=["Id", "Username"])
                usernames = {uid: u.get("Username") or "" for uid, u in users.items()}

            rows = sort_deleted_agreements(extract_deleted_agreements(shifts, usernames))
            shift_count = len({r.shift_id for r in rows})
            return ReportResult(
                report_name=DELETED_AGREEMENTS,
                rows=rows,
                columns=DELETED_AGREEMENT_COLUMNS,
                summary={"links": len(rows), "shifts": shift_count},
                message=f"Found {len(rows)} deleted agreements across {shift_count} shifts",
            )

        return await self._run(DELETED_AGREEMENTS, filters, build)

    # ==================== Early approvals ====================

    async def run_early_approvals(self, filters: ReportFilters) -> ReportResult:
        """
        Approved timesheets confirmed before their shift started.

        Optionally scoped to one location. Rows are ordered by how far ahead
        of the shift the approval happened.
        """
        from_date, to_date = filters.require_date_range()

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            location_clause = None
            if filters.location_id is not None:
                location_clause = f"ScheduleShiftAttendanceObject/Schedule/LocationID eq {filters.location_id}"
            query = ODataQuery(
                entity="ScheduleShiftAttendanceApproval",
                filter=and_filters(
                    "Deleted eq false",
                    f"Status eq {APPROVED_STATUS}",
                    "ConfirmedUTC ne null",
                    "StartTime ne null",
                    date_range_filter("StartTime", from_date, to_date),
                    location_clause,
                ),
                expand=[
                    ODataExpand(
                        navigation="ScheduleShiftAttendanceObject",
                        expand=[
                            ODataExpand(navigation="UserObject"),
                            ODataExpand(
                                navigation="Schedule",
                                expand=[ODataExpand(navigation="Location")],
                            ),
                        ],
                    )
                ],
                orderby="ConfirmedUTC desc",
            )
            records = await client.fetch_with_expand(query, progress=progress)
            approvals = decode_records(AttendanceApproval, records, "ScheduleShiftAttendanceApproval")
            early = [a for a in approvals if approved_early(a)]
            progress("process", f"{len(early)} of {len(approvals)} approvals were early", len(early))

            confirmer_ids = [a.confirmed_by for a in early if a.confirmed_by is not None]
            names: dict[int, str] = {}
            if confirmer_ids:
                users = await client.lookup_by_ids(
                    "User", confirmer_ids, select=["Id", "Forename", "Surname", "Username"]
                )
                for uid, user in users.items():
                    full = f"{user.get('Forename') or ''} {user.get('Surname') or ''}".strip()
                    names[uid] = full or user.get("Username") or ""

            rows = sort_early_approvals([build_early_approval_row(a, names) for a in early])
            severe = sum(1 for r in rows if r.severe)
            return ReportResult(
                report_name=EARLY_APPROVALS,
                rows=rows,
                columns=EARLY_APPROVAL_COLUMNS,
                summary={"approvals": len(rows), "severe": severe},
                message=f"Found {len(rows)} early approvals ({severe} at least 24h early)",
            )

        return await self._run(EARLY_APPROVALS, filters, build)

    # ==================== Missing job roles ====================

    async def run_missing_job_roles(self, filters: ReportFilters) -> ReportResult:
        """Active shifts in the date range with no job role assigned."""
        from_date, to_date = filters.require_date_range()

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            query = ODataQuery(
                entity="ScheduleShift",
                filter=and_filters(
                    "Deleted eq false",
                    "JobRoleID eq null",
                    date_range_filter("StartTime", from_date, to_date),
                    _schedule_location_clause(filters),
                ),
                select=[
                    "Id", "Description", "StartTime", "FinishTime", "Hours", "UserID",
                    "ScheduleID", "adhoc_SyllabusPlus",
                ],
                expand=[
                    ODataExpand(navigation="UserObject", select=["Id", "Username", "Forename", "Surname"]),
                    ODataExpand(
                        navigation="Schedule",
                        select=["Id", "LocationID"],
                        expand=[ODataExpand(navigation="Location", select=["Description"])],
                    ),
                ],
                orderby="StartTime",
            )
            records = await client.fetch_with_expand(query, progress=progress)
            shifts = decode_records(ScheduleShift, records, "ScheduleShift")
            rows = sort_by_start([shape_missing_job_role_row(s) for s in shifts])
            return ReportResult(
                report_name=MISSING_JOB_ROLES,
                rows=rows,
                columns=MISSING_JOB_ROLE_COLUMNS,
                summary={"shifts": len(rows)},
                message=f"Found {len(rows)} shifts without a job role",
            )

        return await self._run(MISSING_JOB_ROLES, filters, build)

    # ==================== Activities ====================

    async def run_activities(self, filters: ReportFilters) -> ReportResult:
        """
        Timetabled shifts (with a Syllabus Plus id) and their current activity.

        A shift is flagged when its activity is not a TT activity. The
        activity history expansion gives who made the last activity change
        and what the activity was before. Flagged rows come first.
        """
        from_date, to_date = filters.require_date_range()

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            query = ODataQuery(
                entity="ScheduleShift",
                filter=and_filters(
                    "Deleted eq false",
                    "adhoc_SyllabusPlus ne null",
                    date_range_filter("StartTime", from_date, to_date),
                    _schedule_location_clause(filters),
                ),
                select=[
                    "Id", "Description", "StartTime", "FinishTime", "Hours", "UserID",
                    "ActivityTypeID", "ScheduleID", "DepartmentID", "adhoc_SyllabusPlus",
                    "adhoc_UnitCode",
                ],
                expand=[
                    ODataExpand(navigation="Schedule", select=["Id", "LocationID", "StartDate", "EndDate"]),
                    ODataExpand(
                        navigation="ScheduleShiftActivityHistoryList",
                        select=["Id", "ScheduleShiftID", "ActivityTypeID", "Inserted", "InsertedBy", "Deleted"],
                        filter="Deleted eq false",
                    ),
                ],
                orderby="StartTime",
            )
            records = await client.fetch_with_expand(query, progress=progress)
            shifts = decode_records(ScheduleShift, records, "ScheduleShift")

            lookups = await self._load_lookups(client, progress, activity_user_ids(shifts))
            rows = sort_activity_rows([shape_activity_row(s, lookups) for s in shifts])
            flagged = sum(1 for r in rows if r.flagged)
            return ReportResult(
                report_name=ACTIVITIES,
                rows=rows,
                columns=ACTIVITY_COLUMNS,
                summary={"shifts": len(rows), "flagged": flagged},
                message=f"Found {len(rows)} shifts ({flagged} flagged)",
            )

        return await self._run(ACTIVITIES, filters, build)

    # ==================== Missing activities ====================

    async def run_missing_activities(self, filters: ReportFilters) -> ReportResult:
        """Active shifts in the date range with no activity type."""
        from_date, to_date = filters.require_date_range()

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            query = ODataQuery(
                entity="ScheduleShift",
                filter=and_filters(
                    "Deleted eq false",
                    "ActivityTypeID eq null",
                    date_range_filter("StartTime", from_date, to_date),
                    _schedule_location_clause(filters),
                ),
                select=[
                    "Id", "Description", "StartTime", "FinishTime", "UserID", "ScheduleID",
                    "DepartmentID", "adhoc_UnitCode",
                ],
                expand=[
                    ODataExpand(navigation="Schedule", select=["Id", "LocationID", "StartDate", "EndDate"]),
                ],
                orderby="StartTime",
            )
            records = await client.fetch_with_expand(query, progress=progress)
            shifts = decode_records(ScheduleShift, records, "ScheduleShift")

            user_ids = {s.user_id for s in shifts if s.user_id is not None}
            lookups = await self._load_lookups(client, progress, user_ids)
            rows = sort_by_start([shape_missing_activity_row(s, lookups) for s in shifts])
            return ReportResult(
                report_name=MISSING_ACTIVITIES,
                rows=rows,
                columns=MISSING_ACTIVITY_COLUMNS,
                summary={"shifts": len(rows)},
                message=f"Found {len(rows)} shifts without an activity",
            )

        return await self._run(MISSING_ACTIVITIES, filters, build)

    # ==================== Change history ====================

    async def run_change_history(self, filters: ReportFilters) -> ReportResult:
        """
        Shift revisions saved within the date range, most recent first.

        The range applies to when the change was made, not when the shift
        runs. The location scope is applied to the rows because it depends
        on the expanded shift's schedule.
        """
        from_date, to_date = filters.require_date_range()

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            query = ODataQuery(
                entity="ScheduleShiftHistory",
                filter=date_range_filter("Inserted", from_date, to_date),
                select=[
                    "Id", "ScheduleShiftID", "Description", "StartTime", "FinishTime", "Hours",
                    "Deleted", "Inserted", "InsertedBy", "UserID", "ActivityTypeID", "ScheduleID",
                    "DepartmentID",
                ],
                expand=[
                    ODataExpand(
                        navigation="ScheduleShiftObject",
                        select=["Id", "ScheduleID"],
                        expand=[
                            ODataExpand(
                                navigation="Schedule", select=["Id", "LocationID", "StartDate", "EndDate"]
                            )
                        ],
                    )
                ],
                orderby="Inserted desc",
            )
            records = await client.fetch_with_expand(query, progress=progress)
            history = decode_records(ShiftHistory, records, "ScheduleShiftHistory")
            if filters.location_id is not None:
                history = [h for h in history if history_location_id(h) == filters.location_id]

            lookups = await self._load_lookups(client, progress, history_user_ids(history))
            rows = sort_change_history([shape_change_history_row(h, lookups) for h in history])
            shift_count = len({r.shift_id for r in rows if r.shift_id is not None})
            return ReportResult(
                report_name=CHANGE_HISTORY,
                rows=rows,
                columns=CHANGE_HISTORY_COLUMNS,
                summary={"changes": len(rows), "shifts": shift_count},
                message=f"Found {len(rows)} changes across {shift_count} shifts",
            )

        return await self._run(CHANGE_HISTORY, filters, build)

    # ==================== UAT extract ====================

    async def run_uat_extract(self, filters: ReportFilters | None = None) -> ReportResult:
        """
        Fetch every user-related entity concurrently, one sheet each.

        A leading ``Summary`` sheet lists the row count of every other sheet.
        """
        filters = filters or ReportFilters()

        async def build(client: ODataClient, progress: ScopedProgress) -> ReportResult:
            queries = {
                spec.name: build_sheet_query(spec, filters.active_only, self.fetch.page_size)
                for spec in UAT_SHEETS
            }
            fetched = await client.fetch_many(queries, progress=progress)

            sheets: list[SheetData] = []
            summary: dict[str, int] = {}
            for spec in UAT_SHEETS:
                rows = shape_sheet_rows(spec, fetched[spec.name])
                summary[spec.name] = len(rows)
                columns = [ColumnSchema(field=c.key, title=c.title) for c in spec.columns]
                sheets.append(SheetData(name=spec.name, rows=rows, columns=columns))

            summary_rows = [{"Sheet": name, "Rows": count} for name, count in summary.items()]
            sheets.insert(0, SheetData(SUMMARY_SHEET, summary_rows, columns_from_rows(summary_rows)))

            users = summary.get(UAT_SHEETS[0].name, 0)
            return ReportResult(
                report_name=UAT_EXTRACT,
                summary=summary,
                sheets=sheets,
                message=f"Loaded {users} users with all related data",
            )

        return await self._run(UAT_EXTRACT, filters, build)
