"""Audit finding records."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {"critical": 0, "warning": 1, "info": 2}[self.value]


class FindingStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Finding:
    """A problem spotted in the books, deterministic or AI-reported."""

    finding_type: str
    severity: Severity
    title: str
    description: str
    entity_type: str = "general"
    entity_id: str = ""
    amount: float = 0.0
    related_ids: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: FindingStatus = FindingStatus.OPEN
    resolution: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime = field(default_factory=_now)

    def copy(self) -> "Finding":
        return replace(self, related_ids=list(self.related_ids))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "finding_type": self.finding_type,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "related_ids": list(self.related_ids),
            "amount": self.amount,
            "status": self.status.value,
            "resolution": self.resolution,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class AuditProgress:
    """Progress report emitted while an audit runs."""

    phase: str
    progress: int
    total: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "progress": self.progress,
            "total": self.total,
            "message": self.message,
        }
