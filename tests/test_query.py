from datetime import date

import pytest
from pydantic import ValidationError

from nimbus_reports.odata_client.query import (
    ODataExpand,
    ODataQuery,
    and_filters,
    date_range_filter,
    encode_component,
    id_in_filter,
)

ODATA_BASE = "https://nimbus.test/CoreAPI/Odata"


def test_encode_component_matches_uri_component_rules():
    assert encode_component("Deleted eq false") == "Deleted%20eq%20false"
    assert encode_component("a/b,c") == "a%2Fb%2Cc"
    assert encode_component("x(y)!*'~_.-") == "x(y)!*'~_.-"


def test_expand_renders_nested_options():
    expand = ODataExpand(
        navigation="ScheduleShiftAgreementList",
        select=["Id", "AgreementID"],
        filter="Deleted eq true",
        expand=[ODataExpand(navigation="Agreement", select=["Description"])],
    )

    assert expand.render() == (
        "ScheduleShiftAgreementList($select=Id,AgreementID;$filter=Deleted eq true;"
        "$expand=Agreement($select=Description))"
    )


def test_bare_expand_is_just_the_navigation_property():
    assert ODataExpand(navigation="UserObject").render() == "UserObject"


def test_build_url_orders_paging_first():
    query = ODataQuery(entity="User", filter="Active eq true", page_size=10)

    assert query.build_url(ODATA_BASE, skip=20) == (
        f"{ODATA_BASE}/User?$top=10&$skip=20&$filter=Active%20eq%20true"
    )


def test_build_url_encodes_expand_and_orderby():
    query = ODataQuery(
        entity="ScheduleShiftAttendanceApproval",
        expand=[ODataExpand(navigation="ScheduleShiftAttendanceObject", expand=[ODataExpand(navigation="UserObject")])],
        orderby="ConfirmedUTC desc",
    )

    url = query.build_url(ODATA_BASE + "/")

    assert url.startswith(f"{ODATA_BASE}/ScheduleShiftAttendanceApproval?$top=500&$skip=0")
    assert "$expand=ScheduleShiftAttendanceObject(%24expand%3DUserObject)" in url
    assert url.endswith("$orderby=ConfirmedUTC%20desc")


def test_entity_must_not_be_empty():
    with pytest.raises(ValidationError):
        ODataQuery(entity="")


def test_page_size_must_be_positive():
    with pytest.raises(ValidationError):
        ODataQuery(entity="User", page_size=0)


def test_and_filters_skips_empty_clauses():
    assert and_filters("A eq 1", None, "", "B eq 2") == "A eq 1 and B eq 2"
    assert and_filters(None) is None


def test_date_range_filter_is_inclusive_of_to_date():
    clause = date_range_filter("StartTime", date(2024, 1, 1), date(2024, 1, 31))

    assert clause == "StartTime ge 2024-01-01T00:00:00Z and StartTime lt 2024-02-01T00:00:00Z"


def test_date_range_filter_open_ended():
    assert date_range_filter("StartTime", None, None) is None
    assert date_range_filter("StartTime", date(2024, 3, 1), None) == "StartTime ge 2024-03-01T00:00:00Z"


def test_id_in_filter():
    assert id_in_filter("Id", [3, 9]) == "Id eq 3 or Id eq 9"
    assert id_in_filter("Id", []) is None
