"""Id-to-label lookup tables for reports that resolve references client-side."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..odata_client.models import ScheduleRef, UserRef
from .formatting import format_date, parse_date

UNKNOWN_USER = "Unknown"

# Activity types whose description starts with this are timetabled
TT_PREFIX = "TT:"


def _descriptions(records: list[dict[str, Any]]) -> dict[int, str]:
    return {r["Id"]: r.get("Description") or "" for r in records if isinstance(r.get("Id"), int)}


@dataclass
class LookupTables:
    """
    Users, locations, departments and activity types keyed by id.

    Every resolver falls back to a ``<Kind> <id>`` label when the id is set
    but missing from the table, and to a blank (or ``Unknown`` for users)
    when the id itself is unset.
    """

    users: dict[int, UserRef] = field(default_factory=dict)
    locations: dict[int, str] = field(default_factory=dict)
    departments: dict[int, str] = field(default_factory=dict)
    activity_types: dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls,
        reference: Mapping[str, list[dict[str, Any]]],
        users: Mapping[int, dict[str, Any]] | None = None,
    ) -> "LookupTables":
        """Build from ``fetch_many`` output keyed by entity and a ``lookup_by_ids`` user map."""
        return cls(
            users={uid: UserRef.model_validate(u) for uid, u in (users or {}).items()},
            locations=_descriptions(reference.get("Location", [])),
            departments=_descriptions(reference.get("Department", [])),
            activity_types=_descriptions(reference.get("ActivityType", [])),
        )

    def username(self, user_id: int | None) -> str:
        if user_id is None:
            return UNKNOWN_USER
        user = self.users.get(user_id)
        if user and user.username:
            return user.username
        return f"User {user_id}"

    def display_name(self, user_id: int | None) -> str:
        """``Full Name (username)``, or whichever half is known."""
        if user_id is None:
            return UNKNOWN_USER
        user = self.users.get(user_id)
        if user is None:
            return f"User {user_id}"
        full_name = user.full_name
        if full_name and user.username:
            return f"{full_name} ({user.username})"
        return full_name or user.username or f"User {user_id}"

    def location(self, location_id: int | None) -> str:
        if location_id is None:
            return ""
        return self.locations.get(location_id) or f"Location {location_id}"

    def department(self, department_id: int | None) -> str:
        if department_id is None:
            return ""
        return self.departments.get(department_id) or f"Department {department_id}"

    def activity(self, activity_type_id: int | None) -> str:
        if activity_type_id is None:
            return ""
        return self.activity_types.get(activity_type_id) or f"Activity {activity_type_id}"

    def is_tt_activity(self, activity_type_id: int | None) -> bool:
        if activity_type_id is None:
            return False
        return self.activity_types.get(activity_type_id, "").startswith(TT_PREFIX)

    def schedule_location(self, schedule: ScheduleRef | None) -> str:
        """Location of a schedule, preferring an expanded ``Location``."""
        if schedule is None:
            return ""
        if schedule.location and schedule.location.description:
            return schedule.location.description
        return self.location(schedule.location_id)


def schedule_period(schedule: ScheduleRef | None) -> str:
    """``DD/MM/YYYY - DD/MM/YYYY`` for a schedule's date range."""
    if schedule is None:
        return ""
    start = parse_date(schedule.start_date)
    end = parse_date(schedule.end_date)
    if start is None and end is None:
        return ""
    return f"{format_date(start)} - {format_date(end)}"
