"""Generated financial reports."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

SUMMARY_CHARS = 200


class ReportType(str, Enum):
    PNL = "pnl"
    CASHFLOW = "cashflow"
    AGING = "aging"
    VENDOR = "vendor"
    EXPENSE = "expense"
    CUSTOM = "custom"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Report:
    """A model-written report over a ledger summary."""

    report_type: ReportType
    content: str
    live_data: bool
    start: str | None = None
    end: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)

    @property
    def title(self) -> str:
        return (
            f"{self.report_type.value.upper()} Report - "
            f"{self.start or 'Current'} to {self.end or 'Current'}"
        )

    @property
    def summary(self) -> str:
        return self.content[:SUMMARY_CHARS]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "report_type": self.report_type.value,
            "start": self.start,
            "end": self.end,
            "content": self.content,
            "summary": self.summary,
            "live_data": self.live_data,
            "created_at": self.created_at.isoformat(),
        }
