"""Audit finding persistence."""

from typing import Protocol

from ai_bookkeeper.audit.models import Finding


class FindingStore(Protocol):
    def replace_all(self, findings: list[Finding]) -> None: ...

    def all(self) -> list[Finding]: ...

    def get(self, finding_id: str) -> Finding | None: ...

    def update(self, finding: Finding) -> None: ...


class InMemoryFindingStore:
    """Findings kept in process memory, keyed by id."""

    def __init__(self) -> None:
        self._findings: dict[str, Finding] = {}

    def replace_all(self, findings: list[Finding]) -> None:
        self._findings = {f.id: f.copy() for f in findings}

    def all(self) -> list[Finding]:
        return [f.copy() for f in self._findings.values()]

    def get(self, finding_id: str) -> Finding | None:
        finding = self._findings.get(finding_id)
        return finding.copy() if finding else None

    def update(self, finding: Finding) -> None:
        self._findings[finding.id] = finding.copy()
