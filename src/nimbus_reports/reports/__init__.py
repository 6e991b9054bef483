"""Report orchestration."""

from .engine import ReportEngine, ReportResult
from .filters import ReportFilters

__all__ = ["ReportEngine", "ReportResult", "ReportFilters"]
