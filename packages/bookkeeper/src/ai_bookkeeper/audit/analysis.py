"""AI deep-analysis pass of the audit."""

import json
import re
from typing import Any

import structlog
from pydantic import Field, field_validator

from ai_bookkeeper.ai_json import LenientPayload, parse_items
from ai_bookkeeper.audit.models import Finding, Severity
from ai_bookkeeper.clients.base import ChatCapability, ConversationTurn
from ai_bookkeeper.config import get_settings

logger = structlog.get_logger(__name__)

ANALYSIS_SYSTEM_PROMPT = "You are a forensic bookkeeper. Return only valid JSON arrays."

# (label, data key, record slice, character budget)
EXCERPTS: list[tuple[str, str, int | None, int]] = [
    ("Recent Invoices (up to 100)", "invoices", 100, 15_000),
    ("Recent Bills (up to 100)", "bills", 100, 15_000),
    ("Recent Expenses (up to 100)", "expenses", 100, 10_000),
    ("Chart of Accounts", "chart_of_accounts", None, 5_000),
    ("Bank Accounts", "bank_accounts", None, 3_000),
    ("Customer Payments (up to 50)", "customer_payments", 50, 8_000),
    ("Vendor Payments (up to 50)", "vendor_payments", 50, 8_000),
]


class AIFindingPayload(LenientPayload):
    """One finding as the model reports it."""

    finding_type: str = Field(default="ai_finding", alias="findingType")
    severity: Severity = Severity.INFO
    title: str = "AI Finding"
    description: str = ""
    entity_type: str = Field(default="general", alias="entityType")
    entity_id: str = Field(default="", alias="entityId")
    amount: float = 0.0

    @field_validator("severity", mode="before")
    @classmethod
    def _known_severity(cls, value: Any) -> Any:
        value = str(value).strip().lower()
        return value if value in {s.value for s in Severity} else Severity.INFO

    @field_validator("entity_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _money(cls, value: Any) -> float:
        if isinstance(value, (int, float)):
            return float(value)
        cleaned = re.sub(r"[^\d.\-]", "", str(value))
        try:
            return float(cleaned)
        except ValueError:
            return 0.0

    def to_finding(self) -> Finding:
        return Finding(
            finding_type=self.finding_type,
            severity=self.severity,
            title=self.title,
            description=self.description,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            amount=self.amount,
        )


def _excerpt(value: Any, budget: int) -> str:
    return json.dumps(value, indent=2, default=str)[:budget]


def build_analysis_prompt(
    data: dict[str, list[dict[str, Any]]],
    structural_findings: list[Finding],
    business: str | None = None,
) -> str:
    """Prompt for the single-shot analysis, with each data category cut to its budget."""
    business = business or get_settings().business_context
    sections = []
    for label, key, limit, budget in EXCERPTS:
        records = data.get(key, [])
        if limit is not None:
            records = records[:limit]
        sections.append(f"{label}:\n{_excerpt(records, budget)}")

    known = json.dumps(
        [
            {
                "findingType": f.finding_type,
                "severity": f.severity.value,
                "title": f.title,
                "entityId": f.entity_id,
                "amount": f.amount,
            }
            for f in structural_findings
        ],
        indent=2,
    )
    excerpts = "\n\n".join(sections)

    return f"""You are an expert forensic bookkeeper auditing the financial records of {business}.

I'm going to give you a summary of their accounting data. Analyze it for:
1. **Discrepancies** - amounts that don't add up, status mismatches
2. **Missing records** - gaps in invoice numbering, missing payments for completed services
3. **Tax issues** - HST/GST compliance, incorrect tax calculations
4. **Cash flow concerns** - late payments, aging receivables patterns
5. **Unusual patterns** - sudden changes in spending, vendor concentration risks
6. **Categorization issues** - expenses in wrong accounts for this business

The structural checks already found these issues:
{known}

Here is the financial data summary:
- Total Invoices: {len(data.get("invoices", []))}
- Total Bills: {len(data.get("bills", []))}
- Total Expenses: {len(data.get("expenses", []))}
- Total Contacts: {len(data.get("contacts", []))}

{excerpts}

Based on this data, provide ADDITIONAL findings beyond what the structural checks already found.
Return your findings as a JSON array of objects with this exact structure:
[
  {{
    "findingType": "string (e.g. tax_issue, categorization_error, missing_record, cash_flow_concern, vendor_risk, compliance_issue)",
    "severity": "critical" | "warning" | "info",
    "title": "Short descriptive title",
    "description": "Detailed explanation with specific numbers and entity references",
    "entityType": "invoice" | "bill" | "expense" | "payment" | "account" | "contact" | "general",
    "entityId": "Ledger entity ID if applicable, empty string otherwise",
    "amount": 0
  }}
]

Return ONLY the JSON array, no other text. Be specific with dollar amounts and dates."""


def analysis_error_finding(error: Exception) -> Finding:
    return Finding(
        finding_type="ai_error",
        severity=Severity.INFO,
        title="AI analysis could not complete",
        description=(
            f"The AI deep analysis encountered an error: {error}. "
            "Structural checks were still performed successfully."
        ),
    )


async def run_ai_analysis(
    chat: ChatCapability,
    data: dict[str, list[dict[str, Any]]],
    structural_findings: list[Finding],
) -> list[Finding]:
    """Ask the model for additional findings.

    Never raises: a failed call or unparseable reply becomes a single
    ``ai_error`` finding.
    """
    prompt = build_analysis_prompt(data, structural_findings)
    try:
        response = await chat.generate(
            ANALYSIS_SYSTEM_PROMPT,
            [ConversationTurn.user(prompt)],
            temperature=get_settings().analysis_temperature,
        )
        payloads = parse_items(response.text, AIFindingPayload)
    except Exception as e:
        logger.warning("ai_analysis_failed", error=str(e), error_type=type(e).__name__)
        return [analysis_error_finding(e)]

    logger.info("ai_analysis_complete", findings=len(payloads))
    return [payload.to_finding() for payload in payloads]
