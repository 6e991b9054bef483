"""Pure record-to-row transformers. Nothing here touches the network."""

from .activities import (
    ActivityChange,
    analyze_activity_change,
    shape_activity_row,
    shape_missing_activity_row,
    sort_activity_rows,
)
from .agreements import extract_deleted_agreements, sort_deleted_agreements
from .approvals import LeadTime, approved_early, build_early_approval_row, compute_lead_time
from .cost_codes import CostCodeStats, cost_code_stats, sort_cost_codes, validate_cost_code
from .history import shape_change_history_row, sort_change_history
from .lookups import LookupTables
from .rows import (
    ActivityChangeRow,
    ChangeHistoryRow,
    CostCodeRow,
    DeletedAgreementRow,
    EarlyApprovalRow,
    MissingActivityRow,
    MissingJobRoleRow,
    SecurityRoleRow,
    ValidationStatus,
)
from .security_roles import RowIdSequence, flatten_user_roles, sort_security_role_rows
from .sheets import SheetColumn, SheetSpec, shape_sheet_rows
from .shifts import shape_missing_job_role_row

__all__ = [
    "ActivityChange",
    "analyze_activity_change",
    "shape_activity_row",
    "shape_missing_activity_row",
    "sort_activity_rows",
    "extract_deleted_agreements",
    "sort_deleted_agreements",
    "LeadTime",
    "approved_early",
    "build_early_approval_row",
    "compute_lead_time",
    "CostCodeStats",
    "cost_code_stats",
    "sort_cost_codes",
    "validate_cost_code",
    "shape_change_history_row",
    "sort_change_history",
    "LookupTables",
    "ActivityChangeRow",
    "ChangeHistoryRow",
    "CostCodeRow",
    "DeletedAgreementRow",
    "EarlyApprovalRow",
    "MissingActivityRow",
    "MissingJobRoleRow",
    "SecurityRoleRow",
    "ValidationStatus",
    "RowIdSequence",
    "flatten_user_roles",
    "sort_security_role_rows",
    "SheetColumn",
    "SheetSpec",
    "shape_sheet_rows",
    "shape_missing_job_role_row",
]
