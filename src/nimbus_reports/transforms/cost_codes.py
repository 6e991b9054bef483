"""Cost code validation.

A cost code is usable for payroll only when it is active, carries the ``/``
delimiter required by the payroll extract, and today falls inside its
``adhoc_From`` / ``adhoc_To`` validity window.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date

from ..odata_client.models import CostCentre
from .formatting import format_date, parse_date
from .rows import CostCodeRow, ValidationStatus

DELIMITER = "/"


def determine_status(
    active: bool, has_delimiter: bool, is_expired: bool, is_not_yet_valid: bool
) -> ValidationStatus:
    """Pick the single status by fixed precedence."""
    if not active:
        return ValidationStatus.INACTIVE
    if not has_delimiter:
        return ValidationStatus.MISSING_DELIMITER
    if is_expired:
        return ValidationStatus.EXPIRED
    if is_not_yet_valid:
        return ValidationStatus.NOT_YET_VALID
    return ValidationStatus.VALID


def validate_cost_code(record: CostCentre, today: date | None = None) -> CostCodeRow:
    """Annotate a cost centre with its validity flags and status."""
    today = today or date.today()
    code = record.code or ""

    has_delimiter = DELIMITER in code
    valid_from = parse_date(record.valid_from)
    valid_to = parse_date(record.valid_to)
    is_expired = valid_to is not None and valid_to < today
    is_not_yet_valid = valid_from is not None and valid_from > today

    return CostCodeRow(
        id=record.id,
        code=code,
        description=record.description or "",
        active=record.active,
        has_delimiter=has_delimiter,
        valid_from=format_date(valid_from),
        valid_to=format_date(valid_to),
        is_expired=is_expired,
        is_not_yet_valid=is_not_yet_valid,
        validation_status=determine_status(
            record.active, has_delimiter, is_expired, is_not_yet_valid
        ),
    )


@dataclass
class CostCodeStats:
    """Counts of cost codes per validation status."""

    total: int = 0
    valid: int = 0
    expired: int = 0
    not_yet_valid: int = 0
    missing_delimiter: int = 0
    inactive: int = 0

    @property
    def with_issues(self) -> int:
        return self.total - self.valid

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "valid": self.valid,
            "expired": self.expired,
            "not_yet_valid": self.not_yet_valid,
            "missing_delimiter": self.missing_delimiter,
            "inactive": self.inactive,
        }


def cost_code_stats(rows: list[CostCodeRow]) -> CostCodeStats:
    counts = Counter(row.validation_status for row in rows)
    return CostCodeStats(
        total=len(rows),
        valid=counts[ValidationStatus.VALID],
        expired=counts[ValidationStatus.EXPIRED],
        not_yet_valid=counts[ValidationStatus.NOT_YET_VALID],
        missing_delimiter=counts[ValidationStatus.MISSING_DELIMITER],
        inactive=counts[ValidationStatus.INACTIVE],
    )


def sort_cost_codes(rows: list[CostCodeRow]) -> list[CostCodeRow]:
    """Invalid codes first, then by code."""
    return sorted(rows, key=lambda r: (r.is_valid, r.code.casefold()))
