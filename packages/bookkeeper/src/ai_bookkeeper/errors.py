"""Domain errors raised at the bookkeeper's service boundary."""

from typing import Any


class BookkeeperError(Exception):
    """Base exception for bookkeeper domain errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class MissingAPIKeyError(BookkeeperError):
    """No Anthropic API key is configured."""

    def __init__(self) -> None:
        super().__init__(
            "Anthropic API key not configured. Set ANTHROPIC_API_KEY in the "
            "environment or .env file."
        )


class LedgerNotConnectedError(BookkeeperError):
    """The ledger has no organization or access token configured."""

    def __init__(self) -> None:
        super().__init__(
            "Ledger not connected. Set LEDGER_ORGANIZATION_ID and provide an "
            "access token (LEDGER_ACCESS_TOKEN or a token provider)."
        )


class TaskNotFoundError(BookkeeperError):
    """No task with the given id exists in the queue."""

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class InvalidTaskStateError(BookkeeperError):
    """A task operation was attempted from a state that does not allow it."""

    def __init__(self, task_id: str, status: str, operation: str):
        super().__init__(f"Cannot {operation} task {task_id} while it is {status}")
        self.task_id = task_id
        self.status = status


class SweepInProgressError(BookkeeperError):
    """A full queue sweep is already running."""

    def __init__(self) -> None:
        super().__init__("Task queue is already processing pending tasks")


class FindingNotFoundError(BookkeeperError):
    """No audit finding with the given id exists."""

    def __init__(self, finding_id: str):
        super().__init__(f"Audit finding not found: {finding_id}")
        self.finding_id = finding_id


class AIResponseParseError(BookkeeperError):
    """A model reply did not contain the JSON structure we asked for."""

    pass
