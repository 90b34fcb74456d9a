"""Books audit: deterministic checks plus an AI review."""

from ai_bookkeeper.audit.analysis import AIFindingPayload, build_analysis_prompt, run_ai_analysis
from ai_bookkeeper.audit.checks import (
    check_duplicates,
    check_overdue_invoices,
    check_payment_mismatches,
    check_uncategorized,
    check_unusual_amounts,
)
from ai_bookkeeper.audit.engine import AuditEngine
from ai_bookkeeper.audit.models import AuditProgress, Finding, FindingStatus, Severity
from ai_bookkeeper.audit.store import FindingStore, InMemoryFindingStore

__all__ = [
    "AuditEngine",
    "Finding",
    "FindingStatus",
    "Severity",
    "AuditProgress",
    "FindingStore",
    "InMemoryFindingStore",
    "check_overdue_invoices",
    "check_duplicates",
    "check_payment_mismatches",
    "check_unusual_amounts",
    "check_uncategorized",
    "AIFindingPayload",
    "build_analysis_prompt",
    "run_ai_analysis",
]
