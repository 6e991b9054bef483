import asyncio
from datetime import date

import httpx
import pytest

from nimbus_reports.config import FetchConfig
from nimbus_reports.errors import GENERIC_REPORT_FAILURE, ReportError, ReportPreconditionError
from nimbus_reports.odata_client import HttpTransport, ODataClient
from nimbus_reports.progress import ProgressChannel
from nimbus_reports.reports import ReportEngine, ReportFilters
from nimbus_reports.session import Session
from nimbus_reports.transforms.rows import ValidationStatus

TODAY = date(2024, 6, 15)


def _entity(request: httpx.Request) -> str:
    return request.url.path.rsplit("/", 1)[-1]


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def make_engine(session, fake_sleep, requests_seen):
    def _make(routes, **kwargs):
        def handler(request):
            requests_seen.append(request)
            route = routes[_entity(request)]
            result = route(request) if callable(route) else route
            if isinstance(result, httpx.Response):
                return result
            return httpx.Response(200, json={"value": result})

        def factory(s):
            transport = HttpTransport(s, transport=httpx.MockTransport(handler))
            return ODataClient(s, transport=transport, sleep=fake_sleep)

        kwargs.setdefault("today", TODAY)
        return ReportEngine(session, client_factory=factory, **kwargs)

    return _make


def _run(coro):
    return asyncio.run(coro)


class TestPreconditions:
    def test_no_session(self):
        engine = ReportEngine(None)

        with pytest.raises(ReportPreconditionError, match="Not connected"):
            _run(engine.run_cost_codes())

    def test_incomplete_session_makes_no_request(self, make_engine, requests_seen):
        engine = make_engine({})
        engine.session = Session(base_url="https://nimbus.test", user_id=1)

        with pytest.raises(ReportPreconditionError):
            _run(engine.run_security_roles())

        assert requests_seen == []

    @pytest.mark.parametrize(
        "filters",
        [
            ReportFilters(),
            ReportFilters(from_date=date(2024, 1, 1)),
            ReportFilters(from_date=date(2024, 2, 1), to_date=date(2024, 1, 1)),
        ],
    )
    def test_date_range_required(self, make_engine, requests_seen, filters):
        engine = make_engine({})

        with pytest.raises(ReportPreconditionError):
            _run(engine.run_deleted_agreements(filters))
        with pytest.raises(ReportPreconditionError):
            _run(engine.run_early_approvals(filters))
        with pytest.raises(ReportPreconditionError):
            _run(engine.run_missing_job_roles(filters))
        with pytest.raises(ReportPreconditionError):
            _run(engine.run_activities(filters))
        with pytest.raises(ReportPreconditionError):
            _run(engine.run_missing_activities(filters))
        with pytest.raises(ReportPreconditionError):
            _run(engine.run_change_history(filters))

        assert requests_seen == []


class TestFailures:
    def test_transport_failure_becomes_report_error(self, make_engine, fake_sleep):
        engine = make_engine({"CostCentre": lambda request: httpx.Response(500, text="server exploded")})

        with pytest.raises(ReportError) as excinfo:
            _run(engine.run_cost_codes())

        assert "API error: 500" in str(excinfo.value)
        assert fake_sleep.delays == [1.0, 2.0]

    def test_empty_exception_message_uses_fallback(self, make_engine):
        def boom(request):
            raise RuntimeError()

        engine = make_engine({"CostCentre": boom})

        with pytest.raises(ReportError) as excinfo:
            _run(engine.run_cost_codes())

        assert str(excinfo.value) == GENERIC_REPORT_FAILURE


class TestCostCodes:
    RECORDS = [
        {"Id": 1, "Code": "B/1", "Description": "b", "Active": True},
        {"Id": 2, "Code": "A1", "Description": "a", "Active": True},
        {"Id": 3, "Code": "C/1", "Description": "c", "Active": True, "adhoc_To": "2020-01-01T00:00:00"},
        {"Id": 4, "Code": "D/1", "Description": "d", "Active": False},
        {"Code": "no id at all"},
    ]

    def test_sorted_invalid_first_with_summary(self, make_engine, requests_seen):
        engine = make_engine({"CostCentre": self.RECORDS})

        result = _run(engine.run_cost_codes(ReportFilters(active_only=False)))

        assert [r.code for r in result.rows] == ["A1", "C/1", "D/1", "B/1"]
        assert result.summary == {
            "total": 4,
            "valid": 1,
            "expired": 1,
            "not_yet_valid": 0,
            "missing_delimiter": 1,
            "inactive": 1,
        }
        assert result.report_name == "Cost_Code_Validation"
        assert requests_seen[0].url.params["$filter"] == "Deleted eq false"

    def test_invalid_only_and_active_only(self, make_engine, requests_seen):
        engine = make_engine({"CostCentre": self.RECORDS})

        result = _run(engine.run_cost_codes(ReportFilters(active_only=True, invalid_only=True)))

        assert all(r.validation_status != ValidationStatus.VALID for r in result.rows)
        assert len(result.rows) == 3
        assert result.summary["total"] == 4
        assert requests_seen[0].url.params["$filter"] == "Deleted eq false and Active eq true"


class TestSecurityRoles:
    USERS = [
        {
            "Id": 2, "Username": "zed", "Forename": "Zed", "Surname": "Z", "Active": True, "Rosterable": False,
            "UserSecurityRoleList": [{"Id": 1, "SecurityRole": {"Description": "Admin"}}],
            "UserJobRoleList": [],
        },
        {
            "Id": 1, "Username": "amy", "Forename": "Amy", "Surname": "A", "Active": True, "Rosterable": True,
            "UserSecurityRoleList": [
                {"Id": 2, "SecurityRole": {"Description": "Rostering"}},
                {"Id": 3, "SecurityRole": {"Description": "Admin"}},
            ],
            "UserJobRoleList": [
                {"Id": 4, "JobRole": {"Description": "Tutor"}},
                {"Id": 5, "JobRole": {"Description": "Lecturer"}},
                {"Id": 6, "JobRole": {"Description": "Marker"}},
            ],
        },
    ]

    def test_flattened_sorted_and_summarised(self, make_engine, requests_seen):
        engine = make_engine({"User": self.USERS})

        result = _run(engine.run_security_roles())

        assert len(result.rows) == 7
        assert result.summary == {"rows": 7, "users": 2}
        assert [(r.username, r.security_role, r.job_role) for r in result.rows[:3]] == [
            ("amy", "Admin", "Lecturer"),
            ("amy", "Admin", "Marker"),
            ("amy", "Admin", "Tutor"),
        ]
        assert result.rows[-1].username == "zed"
        assert len({r.id for r in result.rows}) == 7
        params = requests_seen[0].url.params
        assert params["$top"] == "100"
        assert params["$expand"].startswith("UserSecurityRoleList(")

    def test_rosterable_only(self, make_engine):
        engine = make_engine({"User": self.USERS})

        result = _run(engine.run_security_roles(ReportFilters(rosterable_only=True)))

        assert {r.username for r in result.rows} == {"amy"}
        assert result.summary == {"rows": 6, "users": 1}


class TestDeletedAgreements:
    def test_links_extracted_and_modifiers_resolved(self, make_engine, requests_seen):
        shifts = [
            {
                "Id": 10, "Description": "Lab", "StartTime": "2024-03-04T09:00:00",
                "ScheduleShiftAgreementList": [
                    {"Id": 1, "AgreementID": 5, "Deleted": True, "UpdatedBy": 9,
                     "Updated": "2024-03-01T10:00:00"},
                    {"Id": 2, "AgreementID": 6, "Deleted": False, "UpdatedBy": 9},
                ],
            },
            {"Id": 11, "Description": "Empty", "ScheduleShiftAgreementList": []},
        ]
        engine = make_engine({"ScheduleShift": shifts, "User": [{"Id": 9, "Username": "admin"}]})

        result = _run(
            engine.run_deleted_agreements(
                ReportFilters(from_date=date(2024, 3, 1), to_date=date(2024, 3, 31))
            )
        )

        assert [r.agreement_id for r in result.rows] == [5]
        assert result.rows[0].modified_by == "admin"
        assert result.summary == {"links": 1, "shifts": 1}
        shift_filter = requests_seen[0].url.params["$filter"]
        assert "StartTime ge 2024-03-01T00:00:00Z" in shift_filter
        assert "StartTime lt 2024-04-01T00:00:00Z" in shift_filter
        assert "ScheduleShiftAgreementList/any(a: a/Deleted eq true)" in shift_filter
        assert requests_seen[1].url.params["$filter"] == "Id eq 9"


class TestEarlyApprovals:
    @staticmethod
    def _approval(approval_id, confirmed, start, confirmed_by=77):
        return {
            "Id": approval_id,
            "Status": 3,
            "ConfirmedUTC": confirmed,
            "ConfirmedBy": confirmed_by,
            "StartTime": start,
            "ScheduleShiftAttendanceObject": {"UserObject": {"Username": f"u{approval_id}"}},
        }

    def test_only_early_approvals_sorted_by_lead_time(self, make_engine, requests_seen):
        approvals = [
            self._approval(1, "2024-05-01T08:00:00Z", "2024-05-01T10:00:00Z"),
            self._approval(2, "2024-05-01T08:00:00Z", "2024-05-03T08:00:00Z"),
            self._approval(3, "2024-05-02T12:00:00Z", "2024-05-02T08:00:00Z"),
        ]
        engine = make_engine(
            {
                "ScheduleShiftAttendanceApproval": approvals,
                "User": [{"Id": 77, "Forename": "Sam", "Surname": "Boss"}],
            }
        )
        filters = ReportFilters(from_date=date(2024, 5, 1), to_date=date(2024, 5, 31), location_id=4)

        result = _run(engine.run_early_approvals(filters))

        assert [r.approval_id for r in result.rows] == [2, 1]
        assert result.rows[0].hours_before_shift == 48.0
        assert result.rows[0].approved_by == "Sam Boss"
        assert result.summary == {"approvals": 2, "severe": 1}
        approval_filter = requests_seen[0].url.params["$filter"]
        assert "Status eq 3" in approval_filter
        assert "ScheduleShiftAttendanceObject/Schedule/LocationID eq 4" in approval_filter
        assert requests_seen[0].url.params["$orderby"] == "ConfirmedUTC desc"


class TestMissingJobRoles:
    def test_rows_sorted_by_start(self, make_engine, requests_seen):
        shifts = [
            {"Id": 2, "StartTime": "2024-05-03T09:00:00Z", "UserObject": {"Username": "b"}},
            {"Id": 1, "StartTime": "2024-05-02T09:00:00Z"},
        ]
        engine = make_engine({"ScheduleShift": shifts})

        result = _run(
            engine.run_missing_job_roles(
                ReportFilters(from_date=date(2024, 5, 1), to_date=date(2024, 5, 31))
            )
        )

        assert [r.shift_id for r in result.rows] == [1, 2]
        assert result.rows[1].staff_username == "b"
        assert result.summary == {"shifts": 2}
        assert "JobRoleID eq null" in requests_seen[0].url.params["$filter"]


REFERENCE_ROUTES = {
    "Location": [{"Id": 3, "Description": "Clayton"}, {"Id": 5, "Description": "Caulfield"}],
    "Department": [{"Id": 4, "Description": "Information Technology"}],
    "ActivityType": [{"Id": 10, "Description": "TT: Tutorial"}, {"Id": 11, "Description": "Marking"}],
}


def _requests_for(requests, entity):
    return [r for r in requests if _entity(r) == entity]


class TestActivities:
    def test_flagged_first_with_lookups_resolved(self, make_engine, requests_seen):
        shifts = [
            {"Id": 1, "StartTime": "2024-05-02T09:00:00Z", "ActivityTypeID": 10, "UserID": 8,
             "DepartmentID": 4, "adhoc_SyllabusPlus": "FIT1045",
             "Schedule": {"Id": 12, "LocationID": 3}},
            {"Id": 2, "StartTime": "2024-05-03T09:00:00Z", "ActivityTypeID": 11, "UserID": 8,
             "adhoc_SyllabusPlus": "FIT2004",
             "ScheduleShiftActivityHistoryList": [
                 {"Id": 1, "ActivityTypeID": 10, "Inserted": "2024-04-01T09:00:00Z", "InsertedBy": 9},
                 {"Id": 2, "ActivityTypeID": 11, "Inserted": "2024-04-02T09:00:00Z", "InsertedBy": 9},
             ]},
        ]
        routes = {
            **REFERENCE_ROUTES,
            "ScheduleShift": shifts,
            "User": [{"Id": 8, "Username": "jdoe"}, {"Id": 9, "Username": "admin"}],
        }
        engine = make_engine(routes)
        filters = ReportFilters(from_date=date(2024, 5, 1), to_date=date(2024, 5, 31), location_id=3)

        result = _run(engine.run_activities(filters))

        assert [r.shift_id for r in result.rows] == [2, 1]
        assert result.rows[0].flagged
        assert result.rows[0].previous_activity == "TT: Tutorial"
        assert result.rows[0].changed_by == "admin"
        assert result.rows[1].location == "Clayton"
        assert result.rows[1].department == "Information Technology"
        assert result.rows[1].assigned_to == "jdoe"
        assert result.summary == {"shifts": 2, "flagged": 1}
        assert result.message == "Found 2 shifts (1 flagged)"

        shift_params = requests_seen[0].url.params
        assert "adhoc_SyllabusPlus ne null" in shift_params["$filter"]
        assert "Schedule/LocationID eq 3" in shift_params["$filter"]
        assert "ScheduleShiftActivityHistoryList(" in shift_params["$expand"]
        user_requests = _requests_for(requests_seen, "User")
        assert [r.url.params["$filter"] for r in user_requests] == ["Id eq 8 or Id eq 9"]
        assert {_entity(r) for r in requests_seen} == {
            "ScheduleShift", "Location", "Department", "ActivityType", "User",
        }


class TestMissingActivities:
    def test_rows_sorted_by_start_without_user_lookup(self, make_engine, requests_seen):
        shifts = [
            {"Id": 2, "StartTime": "2024-05-03T09:00:00Z", "adhoc_UnitCode": "FIT2004",
             "Schedule": {"Id": 12, "LocationID": 5, "StartDate": "2024-05-01", "EndDate": "2024-05-31"}},
            {"Id": 1, "StartTime": "2024-05-02T09:00:00Z"},
        ]
        engine = make_engine({**REFERENCE_ROUTES, "ScheduleShift": shifts})

        result = _run(
            engine.run_missing_activities(
                ReportFilters(from_date=date(2024, 5, 1), to_date=date(2024, 5, 31))
            )
        )

        assert [r.shift_id for r in result.rows] == [1, 2]
        assert result.rows[1].location == "Caulfield"
        assert result.rows[1].schedule_period == "01/05/2024 - 31/05/2024"
        assert result.rows[1].activity_status == "Missing"
        assert result.rows[0].assigned_to == "Unknown"
        assert result.summary == {"shifts": 2}
        assert "ActivityTypeID eq null" in requests_seen[0].url.params["$filter"]
        assert _requests_for(requests_seen, "User") == []


class TestChangeHistory:
    @staticmethod
    def _record(history_id, inserted, location_id):
        return {
            "Id": history_id,
            "ScheduleShiftID": 100 + history_id,
            "Description": "Tutorial",
            "StartTime": "2024-03-04T09:00:00Z",
            "Inserted": inserted,
            "InsertedBy": 9,
            "UserID": 8,
            "ScheduleShiftObject": {
                "Id": 100 + history_id,
                "Schedule": {"Id": 12, "LocationID": location_id},
            },
        }

    def test_location_applied_to_rows_and_users_resolved(self, make_engine, requests_seen):
        records = [
            self._record(1, "2024-03-01T10:00:00Z", 3),
            self._record(2, "2024-03-02T10:00:00Z", 5),
            self._record(3, "2024-03-03T10:00:00Z", 3),
        ]
        routes = {
            **REFERENCE_ROUTES,
            "ScheduleShiftHistory": records,
            "User": [
                {"Id": 8, "Username": "jdoe", "Forename": "Jane", "Surname": "Doe"},
                {"Id": 9, "Username": "admin"},
            ],
        }
        engine = make_engine(routes)
        filters = ReportFilters(from_date=date(2024, 3, 1), to_date=date(2024, 3, 7), location_id=3)

        result = _run(engine.run_change_history(filters))

        assert [r.history_id for r in result.rows] == [3, 1]
        assert result.rows[0].changed_by == "admin"
        assert result.rows[0].allocated_to == "Jane Doe (jdoe)"
        assert result.rows[0].location == "Clayton"
        assert result.summary == {"changes": 2, "shifts": 2}

        params = requests_seen[0].url.params
        assert params["$filter"] == "Inserted ge 2024-03-01T00:00:00Z and Inserted lt 2024-03-08T00:00:00Z"
        assert params["$orderby"] == "Inserted desc"
        assert params["$expand"].startswith("ScheduleShiftObject(")


class TestUATExtract:
    def test_one_sheet_per_entity_plus_summary(self, make_engine):
        routes = {
            "User": [{"Id": 1, "Username": "jdoe", "Forename": "Jane", "Surname": "Doe", "Active": True}],
            "UserLocation": [
                {"UserID": 1, "LocationID": 3, "Active": True,
                 "Location": {"Description": "Clayton"}, "UserObject": {"Payroll": "P1"}},
                {"UserID": 1, "LocationID": 4, "Active": True},
            ],
        }
        for entity in (
            "UserHours", "UserEmployment", "UserJobRole", "UserPayRate", "UserPayRateVariation",
            "UserAgreement", "UserSkill", "UserCycle", "UserSecurityRole",
        ):
            routes[entity] = []
        channel = ProgressChannel()
        engine = make_engine(routes, progress=channel)

        result = _run(engine.run_uat_extract())

        assert result.is_multi_sheet
        assert len(result.sheets) == 12
        assert result.sheets[0].name == "Summary"
        assert result.summary["Staff Profile"] == 1
        assert result.summary["Location"] == 2
        assert result.row_count == 3

        location = result.sheets[2]
        assert location.name == "Location"
        assert location.rows[0]["Payroll"] == "P1"
        assert location.rows[0]["Location"] == "Clayton"
        assert location.rows[1]["Location"] == ""

        reports = {e.report for e in channel.events}
        assert "UAT_Extract [11/11]" in reports
        assert channel.events[-1].phase == "done"


def test_verify_uses_single_user_request(make_engine, requests_seen):
    engine = make_engine({"User": [{"Id": 1}]})

    assert _run(engine.verify()) is True
    assert requests_seen[0].url.params["$top"] == "1"


def test_page_size_from_fetch_config(make_engine, requests_seen):
    engine = make_engine({"CostCentre": []}, fetch=FetchConfig(page_size=250))

    _run(engine.run_cost_codes())

    assert requests_seen[0].url.params["$top"] == "250"
