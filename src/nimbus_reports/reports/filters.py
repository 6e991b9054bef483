"""Report filters for scoping queries and post-filtering rows."""

import re
from dataclasses import dataclass
from datetime import date, timedelta

from ..errors import ReportPreconditionError


def parse_date_arg(value: str | None, today: date | None = None) -> date | None:
    """
    Parse a CLI date: ``YYYY-MM-DD``, ``today``, or ``Nd`` for N days ago.

    Raises:
        ReportPreconditionError: When the value is not a recognised date
    """
    if value is None or not value.strip():
        return None
    value = value.strip()
    today = today or date.today()

    if value.lower() == "today":
        return today

    # "30d" means 30 days before today
    day_match = re.match(r"^(\d+)d$", value, re.IGNORECASE)
    if day_match:
        return today - timedelta(days=int(day_match.group(1)))

    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ReportPreconditionError(f"Invalid date '{value}' (expected YYYY-MM-DD)") from None


@dataclass
class ReportFilters:
    """
    Inputs that scope a report run.

    Date ranges are inclusive calendar days. Not every report reads every
    field; each ``run_*`` method documents what it requires.
    """

    # Date range
    from_date: date | None = None
    to_date: date | None = None

    # Location scope (shift and approval reports)
    location_id: int | None = None

    # Record filters applied in the query
    active_only: bool = True

    # Row filters applied after transformation
    rosterable_only: bool = False
    invalid_only: bool = False

    def require_date_range(self) -> tuple[date, date]:
        """
        Return the date range, or raise when it is missing or inverted.

        Raises:
            ReportPreconditionError: When either bound is missing or from > to
        """
        if self.from_date is None or self.to_date is None:
            raise ReportPreconditionError("Please select both From and To dates")
        if self.from_date > self.to_date:
            raise ReportPreconditionError("From date must be on or before To date")
        return self.from_date, self.to_date

    def get_description(self) -> str:
        """Get a human-readable description of active filters."""
        parts = []

        if self.from_date or self.to_date:
            start = self.from_date.isoformat() if self.from_date else "..."
            end = self.to_date.isoformat() if self.to_date else "..."
            parts.append(f"dates: {start} to {end}")

        if self.location_id is not None:
            parts.append(f"location: {self.location_id}")

        if not self.active_only:
            parts.append("including inactive")

        if self.rosterable_only:
            parts.append("rosterable only")

        if self.invalid_only:
            parts.append("invalid only")

        if not parts:
            return "no filters (all data)"

        return "; ".join(parts)

    @classmethod
    def from_cli_args(
        cls,
        from_date: str | None = None,
        to_date: str | None = None,
        location: int | None = None,
        active_only: bool = True,
        rosterable_only: bool = False,
        invalid_only: bool = False,
        today: date | None = None,
    ) -> "ReportFilters":
        """
        Create filters from CLI arguments.

        Args:
            from_date: Start date ("2024-01-01", "30d" or "today")
            to_date: End date, same formats
            location: Location id
            active_only: Restrict queries to active records
            rosterable_only: Keep only rosterable users
            invalid_only: Keep only cost codes with issues
            today: Reference date for relative values
        """
        return cls(
            from_date=parse_date_arg(from_date, today),
            to_date=parse_date_arg(to_date, today),
            location_id=location,
            active_only=active_only,
            rosterable_only=rosterable_only,
            invalid_only=invalid_only,
        )
