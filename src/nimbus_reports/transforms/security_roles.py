"""Flatten users with their security roles and job roles into rows."""

import itertools
from collections.abc import Iterable

from ..odata_client.models import JobRoleAssignment, SecurityRoleAssignment, UserWithRoles
from .rows import SecurityRoleRow


class RowIdSequence:
    """Running counter for synthesized row ids, scoped to one report run."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def next(self) -> int:
        return next(self._counter)


def _description(ref) -> str:
    return (ref.description or "") if ref is not None else ""


def _is_current(assignment: SecurityRoleAssignment | JobRoleAssignment) -> bool:
    return assignment.active and not assignment.deleted


def flatten_user_roles(user: UserWithRoles, sequence: RowIdSequence) -> list[SecurityRoleRow]:
    """
    One row per (security role, job role) pair of a user.

    An empty side is replaced by a single blank placeholder so the user is
    never dropped; a user with neither gets exactly one row. Row ids combine
    the user id, both assignment ids (0 when absent) and the run counter.
    """
    security_roles: list[SecurityRoleAssignment | None] = [
        sr for sr in user.security_roles if _is_current(sr)
    ] or [None]
    job_roles: list[JobRoleAssignment | None] = [
        jr for jr in user.job_roles if _is_current(jr)
    ] or [None]

    rows: list[SecurityRoleRow] = []
    for sr, jr in itertools.product(security_roles, job_roles):
        sr_id = (sr.id if sr else None) or 0
        jr_id = (jr.id if jr else None) or 0
        rows.append(
            SecurityRoleRow(
                id=f"{user.id}-{sr_id}-{jr_id}-{sequence.next()}",
                user_id=user.id,
                username=user.username or "",
                full_name=user.full_name,
                payroll=user.payroll or "",
                active=bool(user.active),
                rosterable=bool(user.rosterable),
                security_role=_description(sr.security_role) if sr else "",
                security_role_location=_description(sr.location) if sr else "",
                security_role_location_group=_description(sr.location_group) if sr else "",
                job_role=_description(jr.job_role) if jr else "",
                default_job_role=jr.default_role if jr else None,
            )
        )
    return rows


def flatten_users(users: Iterable[UserWithRoles], sequence: RowIdSequence | None = None) -> list[SecurityRoleRow]:
    """Flatten many users with one shared counter."""
    sequence = sequence or RowIdSequence()
    rows: list[SecurityRoleRow] = []
    for user in users:
        rows.extend(flatten_user_roles(user, sequence))
    return rows


def sort_security_role_rows(rows: list[SecurityRoleRow]) -> list[SecurityRoleRow]:
    """By username, then security role, then job role."""
    return sorted(
        rows,
        key=lambda r: (r.username.casefold(), r.security_role.casefold(), r.job_role.casefold()),
    )


def unique_usernames(rows: Iterable[SecurityRoleRow]) -> int:
    return len({row.username for row in rows})
