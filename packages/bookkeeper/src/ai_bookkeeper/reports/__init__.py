"""Narrative financial reports and ad-hoc analysis."""

from ai_bookkeeper.reports.generator import (
    REPORT_DATA,
    REPORT_PROMPTS,
    ReportGenerator,
    build_report_prompt,
)
from ai_bookkeeper.reports.models import Report, ReportType
from ai_bookkeeper.reports.summary import aging_buckets, build_financial_summary, filter_by_date

__all__ = [
    "Report",
    "ReportType",
    "ReportGenerator",
    "REPORT_DATA",
    "REPORT_PROMPTS",
    "build_report_prompt",
    "build_financial_summary",
    "aging_buckets",
    "filter_by_date",
]
