"""Report generation and ad-hoc analysis over ledger data."""

import json
from datetime import date
from typing import Any

import structlog

from ai_bookkeeper.clients.base import ChatCapability, ConversationTurn
from ai_bookkeeper.config import get_settings
from ai_bookkeeper.ledger.client import LedgerAPIClient
from ai_bookkeeper.reports.models import Report, ReportType
from ai_bookkeeper.reports.summary import build_financial_summary

logger = structlog.get_logger(__name__)

REPORT_PROMPTS: dict[ReportType, str] = {
    ReportType.PNL: """Generate a Profit & Loss report analysis. Structure it with:
## Executive Summary (2-3 sentences)
## Revenue Analysis (breakdown, trends)
## Cost Analysis (major expenses, categories)
## Net Profit/Loss
## Key Insights & Recommendations
Use markdown tables where appropriate. Be specific with numbers.""",
    ReportType.EXPENSE: """Generate an Expense Breakdown report. Structure it with:
## Executive Summary
## Top Expense Categories (table with amounts and percentages)
## Notable Trends
## Unusual or Flagged Items
## Cost Optimization Suggestions
Format amounts as currency. Highlight any anomalies.""",
    ReportType.AGING: """Generate an Invoice Aging report. Structure it with:
## Summary (total outstanding, count)
## Aging Buckets (table: Current, 1-30, 31-60, 61-90, 90+ days)
## At-Risk Accounts (highest outstanding balances)
## Collection Recommendations
## Cash Flow Impact Assessment
Highlight overdue amounts in the analysis.""",
    ReportType.VENDOR: """Generate a Vendor Payment Analysis. Structure it with:
## Summary
## Top Vendors by Payment Volume (table)
## Payment Timing Analysis (early, on-time, late patterns)
## Vendor Credit Utilization
## Recommendations
Identify patterns that could improve cash management.""",
    ReportType.CASHFLOW: """Generate a Cash Flow Analysis. Structure it with:
## Cash Position Summary
## Inflows (by category)
## Outflows (by category)
## Net Cash Flow
## Projected Trend
## Liquidity Recommendations
Compare inflows vs outflows and highlight any concerns.""",
}

# Ledger categories each report reads
REPORT_DATA: dict[ReportType, tuple[str, ...]] = {
    ReportType.PNL: ("invoices", "bills", "expenses"),
    ReportType.CASHFLOW: (
        "invoices",
        "bills",
        "expenses",
        "bank_accounts",
        "customer_payments",
        "vendor_payments",
    ),
    ReportType.AGING: ("invoices",),
    ReportType.VENDOR: ("bills", "expenses", "contacts"),
    ReportType.EXPENSE: ("expenses", "bills"),
    ReportType.CUSTOM: ("invoices", "bills", "expenses"),
}

_FETCH_METHODS = {
    "invoices": "list_invoices",
    "bills": "list_bills",
    "expenses": "list_expenses",
    "contacts": "list_contacts",
    "bank_accounts": "list_bank_accounts",
    "customer_payments": "list_customer_payments",
    "vendor_payments": "list_vendor_payments",
}

ANALYSIS_SYSTEM_PROMPT = """You are a financial analysis AI. Analyze the provided financial data and give clear, actionable insights.
Focus on:
- Key metrics and trends
- Anomalies or concerns
- Actionable recommendations
Format your response in clean markdown."""


def report_system_prompt(business: str, currency: str, live_data: bool) -> str:
    source = (
        "You have access to LIVE data from the ledger."
        if live_data
        else "No live data available - generate a template report."
    )
    return f"""You are a professional financial analyst and bookkeeper for {business}.
Generate thorough, professional financial reports based on the REAL financial data provided.
{source}

IMPORTANT:
- Use the actual numbers provided in the data
- Format all currency as {currency} with $ symbol and thousands separators
- Use markdown tables where appropriate
- Include executive summary, key metrics, detailed analysis, and recommendations
- Highlight concerning trends or anomalies
- Be specific with numbers - never use placeholder values when real data is provided
- Include percentage calculations and comparisons where relevant"""


def build_report_prompt(
    report_type: ReportType,
    financial_data: str,
    start: str | None = None,
    end: str | None = None,
    detail_level: str = "detailed",
    instructions: str | None = None,
) -> str:
    """User message for one report; custom reports fall back to the P&L layout."""
    body = instructions or REPORT_PROMPTS.get(report_type, REPORT_PROMPTS[ReportType.PNL])
    if financial_data:
        data_block = f"\n\nREAL FINANCIAL DATA FROM THE LEDGER:\n{financial_data}"
    else:
        data_block = "\nNo live data available. Please generate a comprehensive template report."
    return f"""Generate a {report_type.value.upper()} report.
Period: {start or 'all time'} to {end or 'present'}
Detail level: {detail_level}

{body}
{data_block}"""


class ReportGenerator:
    """Writes narrative reports from a deterministic ledger summary.

    One bulk read per category the report needs, then a single model call.
    A category that fails to load is reported as empty; model errors
    propagate.
    """

    def __init__(self, client: LedgerAPIClient, chat: ChatCapability):
        self.client = client
        self.chat = chat

    async def _fetch(self, report_type: ReportType) -> dict[str, list[dict[str, Any]]]:
        data: dict[str, list[dict[str, Any]]] = {}
        for key in REPORT_DATA[report_type]:
            try:
                data[key] = await getattr(self.client, _FETCH_METHODS[key])()
            except Exception as e:
                logger.warning("report_fetch_failed", category=key, error=str(e))
                data[key] = []
        return data

    async def generate(
        self,
        report_type: ReportType | str,
        start: str | None = None,
        end: str | None = None,
        detail_level: str = "detailed",
        instructions: str | None = None,
        today: date | None = None,
    ) -> Report:
        """Generate one report.

        Args:
            report_type: One of the ReportType values.
            start: Earliest ISO date to include, inclusive.
            end: Latest ISO date to include, inclusive.
            detail_level: Passed through to the prompt ("summary", "detailed").
            instructions: Replaces the built-in layout, mainly for custom reports.
            today: Reference date for invoice aging.

        Raises:
            ValueError: If report_type is not a known report.
        """
        report_type = ReportType(report_type)
        settings = get_settings()
        live_data = self.client.is_connected

        financial_data = ""
        if live_data:
            data = await self._fetch(report_type)
            logger.info(
                "report_data_fetched",
                report_type=report_type.value,
                **{k: len(v) for k, v in data.items()},
            )
            financial_data = build_financial_summary(
                report_type, data, settings.currency, start, end, today
            )
        else:
            logger.info("report_without_live_data", report_type=report_type.value)

        response = await self.chat.generate(
            report_system_prompt(settings.business_context, settings.currency, live_data),
            [
                ConversationTurn.user(
                    build_report_prompt(
                        report_type, financial_data, start, end, detail_level, instructions
                    )
                )
            ],
            temperature=settings.report_temperature,
            max_tokens=settings.report_max_tokens,
        )
        report = Report(
            report_type=report_type,
            content=response.text,
            live_data=live_data,
            start=start,
            end=end,
        )
        logger.info("report_generated", report_type=report_type.value, chars=len(report.content))
        return report

    async def analyze(
        self,
        question: str | None = None,
        data: Any = None,
        analysis_type: str = "general",
    ) -> str:
        """Answer a free-form question about caller-supplied data, without tools."""
        settings = get_settings()
        if data is not None:
            payload = json.dumps(data, indent=2, default=str)
        else:
            payload = (
                "No specific data provided. Please provide general guidance "
                "for this type of analysis."
            )
        prompt = (
            f"Analysis type: {analysis_type}\n\n"
            f"{question or 'Please analyze the following financial data:'}\n\n"
            f"{payload}"
        )
        response = await self.chat.generate(
            ANALYSIS_SYSTEM_PROMPT,
            [ConversationTurn.user(prompt)],
            temperature=settings.report_temperature,
            max_tokens=settings.adhoc_max_tokens,
        )
        logger.info("adhoc_analysis_complete", analysis_type=analysis_type)
        return response.text
