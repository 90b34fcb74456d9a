"""Tool executor that bridges LLM tool calls to the ledger API."""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from ai_bookkeeper.ledger.client import LedgerAPIClient, LedgerAPIError

logger = structlog.get_logger(__name__)

ToolHandler = Callable[..., Awaitable[Any]]


class ToolExecutionError(Exception):
    """Error during tool execution."""

    def __init__(self, tool_name: str, message: str, details: Any = None):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name
        self.details = details


def _scalar_params(filters: dict[str, Any]) -> dict[str, str]:
    """Keep only scalar filters and stringify them as query parameters."""
    return {
        key: str(value)
        for key, value in filters.items()
        if value is not None and not isinstance(value, (dict, list))
    }


def _require_object(tool_name: str, field: str, value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ToolExecutionError(tool_name, f"'{field}' must be an object")
    return value


class ToolExecutor:
    """Executes LLM tool calls against the ledger.

    ``execute`` never raises for ledger or argument problems: it returns
    ``{"success": False, "error": ...}`` so the model can react.
    """

    def __init__(self, client: LedgerAPIClient):
        self.client = client
        self._tool_handlers: dict[str, ToolHandler] = {
            # Lists
            "list_invoices": self._list_invoices,
            "list_bills": self._list_bills,
            "list_expenses": self._list_expenses,
            "list_contacts": self._list_contacts,
            "list_bank_accounts": self._list_bank_accounts,
            "list_bank_transactions": self._list_bank_transactions,
            "list_chart_of_accounts": self._list_chart_of_accounts,
            "list_journals": self._list_journals,
            "list_customer_payments": self._list_customer_payments,
            "list_vendor_payments": self._list_vendor_payments,
            "list_credit_notes": self._list_credit_notes,
            "list_items": self._list_items,
            "list_taxes": self._list_taxes,
            # Single records
            "get_invoice": self._get_invoice,
            "get_bill": self._get_bill,
            "get_expense": self._get_expense,
            "get_contact": self._get_contact,
            "get_bank_account": self._get_bank_account,
            "get_organization": self._get_organization,
            # Creates
            "create_invoice": self._create_invoice,
            "create_bill": self._create_bill,
            "create_expense": self._create_expense,
            "create_contact": self._create_contact,
            "create_customer_payment": self._create_customer_payment,
            "create_vendor_payment": self._create_vendor_payment,
            "create_journal_entry": self._create_journal_entry,
            "create_bank_transaction": self._create_bank_transaction,
            # Updates
            "update_invoice": self._update_invoice,
            "update_bill": self._update_bill,
            "update_expense": self._update_expense,
            "update_contact": self._update_contact,
            # Actions
            "send_invoice": self._send_invoice,
            "mark_invoice_sent": self._mark_invoice_sent,
            "categorize_transaction": self._categorize_transaction,
            "match_bank_transaction": self._match_bank_transaction,
            "get_uncategorized_transactions": self._get_uncategorized_transactions,
            "get_matching_transactions": self._get_matching_transactions,
        }

    @property
    def tool_names(self) -> set[str]:
        return set(self._tool_handlers)

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self._tool_handlers

    async def execute(
        self, tool_name: str, arguments: dict[str, Any], ai_initiated: bool = True
    ) -> dict[str, Any]:
        """Execute a tool call and return ``{"success", "data" | "error"}``."""
        handler = self._tool_handlers.get(tool_name)
        if handler is None:
            # Models occasionally invent tool names; tell them instead of failing
            logger.warning("unknown_tool", tool=tool_name)
            return {"success": False, "error": f"Unknown tool: {tool_name}"}

        logger.info("executing_tool", tool=tool_name, args=arguments)

        with structlog.contextvars.bound_contextvars(
            tool=tool_name, ai_initiated=ai_initiated
        ):
            try:
                data = await handler(**(arguments or {}))
            except LedgerAPIError as e:
                logger.warning(
                    "tool_api_error",
                    tool=tool_name,
                    status=e.status_code,
                    details=e.details,
                )
                return {"success": False, "error": str(e), "status_code": e.status_code}
            except ToolExecutionError as e:
                logger.warning("tool_invalid_input", tool=tool_name, error=str(e))
                return {"success": False, "error": str(e)}
            except TypeError as e:
                logger.warning("tool_bad_arguments", tool=tool_name, error=str(e))
                return {
                    "success": False,
                    "error": f"Invalid arguments for tool '{tool_name}': {e}",
                }
            except Exception as e:
                logger.exception("tool_execution_error", tool=tool_name)
                return {"success": False, "error": str(e) or f"Tool {tool_name} failed"}

        logger.info("tool_executed", tool=tool_name, success=True)
        return {"success": True, "data": data}

    # === List Handlers ===

    async def _list_invoices(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_invoices(**_scalar_params(filters))

    async def _list_bills(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_bills(**_scalar_params(filters))

    async def _list_expenses(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_expenses(**_scalar_params(filters))

    async def _list_contacts(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_contacts(**_scalar_params(filters))

    async def _list_bank_accounts(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_bank_accounts(**_scalar_params(filters))

    async def _list_bank_transactions(
        self, account_id: str, **filters: Any
    ) -> list[dict[str, Any]]:
        return await self.client.list_bank_transactions(
            str(account_id), **_scalar_params(filters)
        )

    async def _list_chart_of_accounts(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_chart_of_accounts(**_scalar_params(filters))

    async def _list_journals(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_journals(**_scalar_params(filters))

    async def _list_customer_payments(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_customer_payments(**_scalar_params(filters))

    async def _list_vendor_payments(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_vendor_payments(**_scalar_params(filters))

    async def _list_credit_notes(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_credit_notes(**_scalar_params(filters))

    async def _list_items(self, **filters: Any) -> list[dict[str, Any]]:
        return await self.client.list_items(**_scalar_params(filters))

    async def _list_taxes(self, **_: Any) -> list[dict[str, Any]]:
        return await self.client.list_taxes()

    # === Single Record Handlers ===

    async def _get_invoice(self, invoice_id: str) -> dict[str, Any]:
        return await self.client.get_invoice(str(invoice_id))

    async def _get_bill(self, bill_id: str) -> dict[str, Any]:
        return await self.client.get_bill(str(bill_id))

    async def _get_expense(self, expense_id: str) -> dict[str, Any]:
        return await self.client.get_expense(str(expense_id))

    async def _get_contact(self, contact_id: str) -> dict[str, Any]:
        return await self.client.get_contact(str(contact_id))

    async def _get_bank_account(self, account_id: str) -> dict[str, Any]:
        return await self.client.get_bank_account(str(account_id))

    async def _get_organization(self, **_: Any) -> dict[str, Any]:
        return await self.client.get_organization()

    # === Create Handlers ===

    async def _create_invoice(self, invoice_data: Any) -> dict[str, Any]:
        return await self.client.create_invoice(
            _require_object("create_invoice", "invoice_data", invoice_data)
        )

    async def _create_bill(self, bill_data: Any) -> dict[str, Any]:
        return await self.client.create_bill(
            _require_object("create_bill", "bill_data", bill_data)
        )

    async def _create_expense(self, expense_data: Any) -> dict[str, Any]:
        return await self.client.create_expense(
            _require_object("create_expense", "expense_data", expense_data)
        )

    async def _create_contact(self, contact_data: Any) -> dict[str, Any]:
        return await self.client.create_contact(
            _require_object("create_contact", "contact_data", contact_data)
        )

    async def _create_customer_payment(self, payment_data: Any) -> dict[str, Any]:
        return await self.client.create_customer_payment(
            _require_object("create_customer_payment", "payment_data", payment_data)
        )

    async def _create_vendor_payment(self, payment_data: Any) -> dict[str, Any]:
        return await self.client.create_vendor_payment(
            _require_object("create_vendor_payment", "payment_data", payment_data)
        )

    async def _create_journal_entry(self, journal_data: Any) -> dict[str, Any]:
        return await self.client.create_journal_entry(
            _require_object("create_journal_entry", "journal_data", journal_data)
        )

    async def _create_bank_transaction(self, transaction_data: Any) -> dict[str, Any]:
        return await self.client.create_bank_transaction(
            _require_object("create_bank_transaction", "transaction_data", transaction_data)
        )

    # === Update Handlers ===

    async def _update_invoice(self, invoice_id: str, invoice_data: Any) -> dict[str, Any]:
        return await self.client.update_invoice(
            str(invoice_id), _require_object("update_invoice", "invoice_data", invoice_data)
        )

    async def _update_bill(self, bill_id: str, bill_data: Any) -> dict[str, Any]:
        return await self.client.update_bill(
            str(bill_id), _require_object("update_bill", "bill_data", bill_data)
        )

    async def _update_expense(self, expense_id: str, expense_data: Any) -> dict[str, Any]:
        return await self.client.update_expense(
            str(expense_id), _require_object("update_expense", "expense_data", expense_data)
        )

    async def _update_contact(self, contact_id: str, contact_data: Any) -> dict[str, Any]:
        return await self.client.update_contact(
            str(contact_id), _require_object("update_contact", "contact_data", contact_data)
        )

    # === Action Handlers ===

    async def _send_invoice(
        self, invoice_id: str, email_data: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.client.send_invoice(str(invoice_id), email_data or {})

    async def _mark_invoice_sent(self, invoice_id: str) -> dict[str, Any]:
        return await self.client.mark_invoice_sent(str(invoice_id))

    async def _categorize_transaction(
        self,
        transaction_id: str,
        account_id: str,
        transaction_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self.client.categorize_transaction(
            str(transaction_id), str(account_id), transaction_data or {}
        )

    async def _match_bank_transaction(
        self, transaction_id: str, match_data: Any
    ) -> dict[str, Any]:
        return await self.client.match_bank_transaction(
            str(transaction_id),
            _require_object("match_bank_transaction", "match_data", match_data),
        )

    async def _get_uncategorized_transactions(self, account_id: str) -> list[dict[str, Any]]:
        return await self.client.get_uncategorized_transactions(str(account_id))

    async def _get_matching_transactions(self, transaction_id: str) -> list[dict[str, Any]]:
        return await self.client.get_matching_transactions(str(transaction_id))
