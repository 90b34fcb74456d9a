"""AI Bookkeeper - autonomous bookkeeping over a Zoho Books compatible ledger."""

__version__ = "0.1.0"

from ai_bookkeeper.agent import ToolOrchestrator
from ai_bookkeeper.app import Bookkeeper
from ai_bookkeeper.audit import AuditEngine, Finding, Severity
from ai_bookkeeper.clients import ChatCapability, ClaudeClient
from ai_bookkeeper.config import configure_logging, get_settings
from ai_bookkeeper.ledger import LedgerAPIClient, ToolExecutor
from ai_bookkeeper.matching import CategorizationMatcher, ReconciliationMatcher, RuleBook
from ai_bookkeeper.reports import Report, ReportGenerator, ReportType
from ai_bookkeeper.tasks import Task, TaskQueue, TaskStatus, TaskType

__all__ = [
    # Version
    "__version__",
    # Facade
    "Bookkeeper",
    # Agent loop
    "ToolOrchestrator",
    # Tasks
    "TaskQueue",
    "Task",
    "TaskStatus",
    "TaskType",
    # Audit
    "AuditEngine",
    "Finding",
    "Severity",
    # Matching
    "CategorizationMatcher",
    "ReconciliationMatcher",
    "RuleBook",
    # Reports
    "ReportGenerator",
    "Report",
    "ReportType",
    # LLM Clients
    "ChatCapability",
    "ClaudeClient",
    # Ledger
    "LedgerAPIClient",
    "ToolExecutor",
    # Config
    "get_settings",
    "configure_logging",
]
