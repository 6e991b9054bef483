from nimbus_reports.odata_client.models import ShiftHistory
from nimbus_reports.transforms.history import (
    history_location_id,
    history_user_ids,
    shape_change_history_row,
    sort_change_history,
)
from nimbus_reports.transforms.lookups import LookupTables

LOOKUPS = LookupTables.from_records(
    {
        "Location": [{"Id": 3, "Description": "Clayton"}],
        "ActivityType": [{"Id": 10, "Description": "TT: Tutorial"}],
    },
    {
        8: {"Id": 8, "Username": "jdoe", "Forename": "Jane", "Surname": "Doe"},
        9: {"Id": 9, "Forename": "Sam", "Surname": "Admin"},
    },
)


def _record(history_id=1, inserted="2024-03-01T10:30:00", **extra) -> ShiftHistory:
    data = {
        "Id": history_id,
        "ScheduleShiftID": 100,
        "Description": "Tutorial",
        "StartTime": "2024-03-04T09:00:00",
        "FinishTime": "2024-03-04T11:00:00",
        "Inserted": inserted,
        "InsertedBy": 9,
        "UserID": 8,
        "ActivityTypeID": 10,
        "DepartmentID": 4,
        "ScheduleShiftObject": {
            "Id": 100,
            "ScheduleID": 12,
            "Schedule": {"Id": 12, "LocationID": 3, "StartDate": "2024-03-04", "EndDate": "2024-03-10"},
        },
    }
    data.update(extra)
    return ShiftHistory.model_validate(data)


def test_row_shape():
    row = shape_change_history_row(_record(), LOOKUPS)

    assert row.id == "1"
    assert row.shift_id == 100
    assert row.shift_date == "04/03/2024"
    assert row.shift_from == "09:00"
    assert row.shift_to == "11:00"
    assert row.change_date == "01/03/2024 10:30"
    assert row.changed_by == "Sam Admin"
    assert row.allocated_to == "Jane Doe (jdoe)"
    assert row.activity == "TT: Tutorial"
    assert row.location == "Clayton"
    assert row.department == "Department 4"
    assert row.schedule_id == 12
    assert row.schedule_period == "04/03/2024 - 10/03/2024"
    assert not row.was_deleted


def test_row_without_expanded_shift():
    record = _record(ScheduleShiftObject=None, ScheduleID=7, InsertedBy=None, Deleted=True)

    row = shape_change_history_row(record, LOOKUPS)

    assert row.schedule_id == 7
    assert row.location == ""
    assert row.changed_by == "Unknown"
    assert row.was_deleted
    assert history_location_id(record) is None


def test_location_comes_from_the_expanded_schedule():
    assert history_location_id(_record()) == 3


def test_user_ids():
    records = [_record(), _record(2, InsertedBy=5, UserID=None)]

    assert history_user_ids(records) == {5, 8, 9}


def test_most_recent_first():
    rows = [
        shape_change_history_row(_record(1, "2024-03-01T10:00:00"), LOOKUPS),
        shape_change_history_row(_record(2, "2024-03-03T10:00:00"), LOOKUPS),
        shape_change_history_row(_record(3, "2024-03-01T10:00:00"), LOOKUPS),
    ]

    assert [r.history_id for r in sort_change_history(rows)] == [2, 3, 1]
