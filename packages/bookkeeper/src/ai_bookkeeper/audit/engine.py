"""Full books audit: bulk read, deterministic checks, AI pass, persist."""

from collections import Counter
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

import structlog

from ai_bookkeeper.audit import checks
from ai_bookkeeper.audit.analysis import run_ai_analysis
from ai_bookkeeper.audit.models import AuditProgress, Finding, FindingStatus, Severity
from ai_bookkeeper.audit.store import FindingStore, InMemoryFindingStore
from ai_bookkeeper.clients.base import ChatCapability
from ai_bookkeeper.errors import FindingNotFoundError
from ai_bookkeeper.ledger.client import LedgerAPIClient

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[AuditProgress], None]

# (data key, client method, progress message)
_FETCHES: list[tuple[str, str, str]] = [
    ("invoices", "list_invoices", "Fetching invoices..."),
    ("bills", "list_bills", "Fetching bills..."),
    ("expenses", "list_expenses", "Fetching expenses..."),
    ("contacts", "list_contacts", "Fetching contacts..."),
    ("customer_payments", "list_customer_payments", "Fetching customer payments..."),
    ("vendor_payments", "list_vendor_payments", "Fetching vendor payments..."),
    ("chart_of_accounts", "list_chart_of_accounts", "Fetching chart of accounts..."),
    ("bank_accounts", "list_bank_accounts", "Fetching bank accounts..."),
]


def _sort_key(finding: Finding) -> tuple[int, float]:
    return (finding.severity.rank, -finding.created_at.timestamp())


class AuditEngine:
    """Runs audits over the ledger and keeps the resulting findings."""

    def __init__(
        self,
        client: LedgerAPIClient,
        chat: ChatCapability | None = None,
        store: FindingStore | None = None,
    ):
        self.client = client
        self.chat = chat
        self.store = store or InMemoryFindingStore()

    async def run_full_audit(
        self,
        chat: ChatCapability | None = None,
        on_progress: ProgressCallback | None = None,
        today: date | None = None,
    ) -> list[Finding]:
        """Audit the books and replace the stored findings with the result.

        Ledger read errors propagate. The AI pass never fails the audit; it is
        skipped when no chat capability is available.
        """
        chat = chat or self.chat

        def report(phase: str, progress: int, total: int, message: str) -> None:
            if on_progress is not None:
                on_progress(AuditProgress(phase, progress, total, message))

        # Phase 1: bulk read
        data: dict[str, list[dict[str, Any]]] = {}
        for index, (key, method, message) in enumerate(_FETCHES):
            report("data", index, len(_FETCHES), message)
            data[key] = await getattr(self.client, method)()
        report("data", len(_FETCHES), len(_FETCHES), "All data fetched.")
        logger.info("audit_data_fetched", **{k: len(v) for k, v in data.items()})

        # Phase 2: structural checks
        structural: list[tuple[str, Callable[[], list[Finding]]]] = [
            (
                "Checking for overdue invoices...",
                lambda: checks.check_overdue_invoices(data["invoices"], today),
            ),
            (
                "Checking for duplicate entries...",
                lambda: checks.check_duplicates(data["invoices"], data["bills"]),
            ),
            (
                "Checking payment mismatches...",
                lambda: checks.check_payment_mismatches(
                    data["invoices"], data["customer_payments"], data["vendor_payments"]
                ),
            ),
            (
                "Checking unusual amounts...",
                lambda: checks.check_unusual_amounts(data["expenses"]),
            ),
            (
                "Checking uncategorized items...",
                lambda: checks.check_uncategorized(data["expenses"]),
            ),
        ]
        findings: list[Finding] = []
        for index, (message, check) in enumerate(structural):
            report("analysis", index, len(structural), message)
            findings.extend(check())
        logger.info("audit_structural_checks_done", findings=len(findings))

        # Phase 3: AI pass
        if chat is None:
            logger.info("audit_ai_skipped", reason="no chat capability")
        else:
            report("ai", 0, 1, "Running AI deep analysis...")
            findings.extend(await run_ai_analysis(chat, data, findings))
            report("ai", 1, 1, "AI analysis complete.")

        # Phase 4: persist
        report("save", 0, 1, "Saving findings...")
        for finding in findings:
            finding.status = FindingStatus.OPEN
        self.store.replace_all(findings)
        report("save", 1, 1, "Audit complete!")

        logger.info(
            "audit_complete",
            findings=len(findings),
            critical=sum(1 for f in findings if f.severity is Severity.CRITICAL),
        )
        return [f.copy() for f in findings]

    def get_findings(
        self,
        severity: Severity | str | None = None,
        status: FindingStatus | str | None = None,
        finding_type: str | None = None,
    ) -> list[Finding]:
        """Stored findings, critical first, newest first within a severity."""
        findings = self.store.all()
        if severity is not None:
            findings = [f for f in findings if f.severity is Severity(severity)]
        if status is not None:
            findings = [f for f in findings if f.status is FindingStatus(status)]
        if finding_type is not None:
            findings = [f for f in findings if f.finding_type == finding_type]
        return sorted(findings, key=_sort_key)

    def resolve_finding(self, finding_id: str, resolution: str) -> Finding:
        finding = self.store.get(finding_id)
        if finding is None:
            raise FindingNotFoundError(finding_id)

        finding.status = FindingStatus.RESOLVED
        finding.resolution = resolution
        finding.resolved_at = datetime.now(UTC)
        self.store.update(finding)
        logger.info("finding_resolved", finding_id=finding_id)
        return finding

    def summary(self) -> dict[str, Any]:
        findings = self.store.all()
        return {
            "total": len(findings),
            "by_severity": dict(Counter(f.severity.value for f in findings)),
            "by_status": dict(Counter(f.status.value for f in findings)),
            "open_amount": round(
                sum(f.amount for f in findings if f.status is FindingStatus.OPEN), 2
            ),
        }
