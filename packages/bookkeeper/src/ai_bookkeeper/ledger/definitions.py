"""Tool definitions for LLM function calling against the ledger.

Each entry is a ToolCatalogEntry: a unique name, a description the model reads,
and a JSON schema for the input. Every name has a handler in ToolExecutor.
"""

from typing import Any

_DATE_RANGE: dict[str, Any] = {
    "date_start": {"type": "string", "description": "Start date YYYY-MM-DD"},
    "date_end": {"type": "string", "description": "End date YYYY-MM-DD"},
}

_NO_INPUT: dict[str, Any] = {"type": "object", "properties": {}}

# === List Tools ===

LIST_INVOICES_TOOL: dict[str, Any] = {
    "name": "list_invoices",
    "description": "List ALL invoices. Use to see revenue, outstanding amounts and overdue invoices. Can filter by status, date and customer.",
    "input_schema": {
        "type": "object",
        "properties": {
            "status": {
                "type": "string",
                "description": "Filter: draft, sent, overdue, paid, void, unpaid, partially_paid",
            },
            **_DATE_RANGE,
            "customer_id": {"type": "string", "description": "Filter by customer ID"},
            "sort_column": {
                "type": "string",
                "description": "Sort by: date, invoice_number, customer_name, total, balance, status",
            },
        },
    },
}

LIST_BILLS_TOOL: dict[str, Any] = {
    "name": "list_bills",
    "description": "List ALL bills. Use to see payables, vendor bills and overdue bills.",
    "input_schema": {
        "type": "object",
        "properties": {
            "status": {
                "type": "string",
                "description": "Filter: open, overdue, paid, void, partially_paid",
            },
            **_DATE_RANGE,
            "vendor_id": {"type": "string", "description": "Filter by vendor ID"},
        },
    },
}

LIST_EXPENSES_TOOL: dict[str, Any] = {
    "name": "list_expenses",
    "description": "List ALL expenses. Use to analyze spending, find categories and review costs.",
    "input_schema": {
        "type": "object",
        "properties": {
            "status": {
                "type": "string",
                "description": "Filter: unbilled, invoiced, reimbursed, non-billable",
            },
            **_DATE_RANGE,
            "account_name": {"type": "string", "description": "Filter by expense account name"},
        },
    },
}

LIST_CONTACTS_TOOL: dict[str, Any] = {
    "name": "list_contacts",
    "description": "List ALL customers and vendors. Use to find contact IDs and outstanding balances.",
    "input_schema": {
        "type": "object",
        "properties": {
            "contact_type": {"type": "string", "description": "Filter: customer, vendor"},
            "status": {"type": "string", "description": "Filter: active, inactive"},
        },
    },
}

LIST_BANK_ACCOUNTS_TOOL: dict[str, Any] = {
    "name": "list_bank_accounts",
    "description": "List ALL bank accounts with balances.",
    "input_schema": _NO_INPUT,
}

LIST_BANK_TRANSACTIONS_TOOL: dict[str, Any] = {
    "name": "list_bank_transactions",
    "description": "List bank transactions for one bank account. Use for reconciliation and cash flow analysis.",
    "input_schema": {
        "type": "object",
        "properties": {
            "account_id": {"type": "string", "description": "Bank account ID"},
            **_DATE_RANGE,
            "status": {
                "type": "string",
                "description": "Filter: manually_added, imported, categorized, uncategorized",
            },
        },
        "required": ["account_id"],
    },
}

LIST_CHART_OF_ACCOUNTS_TOOL: dict[str, Any] = {
    "name": "list_chart_of_accounts",
    "description": "List the chart of accounts. Use to find account IDs for categorization.",
    "input_schema": {
        "type": "object",
        "properties": {
            "account_type": {
                "type": "string",
                "description": "Filter: expense, income, asset, liability, equity",
            },
        },
    },
}

LIST_JOURNALS_TOOL: dict[str, Any] = {
    "name": "list_journals",
    "description": "List manual journal entries.",
    "input_schema": {"type": "object", "properties": dict(_DATE_RANGE)},
}

LIST_CUSTOMER_PAYMENTS_TOOL: dict[str, Any] = {
    "name": "list_customer_payments",
    "description": "List all customer payments received.",
    "input_schema": _NO_INPUT,
}

LIST_VENDOR_PAYMENTS_TOOL: dict[str, Any] = {
    "name": "list_vendor_payments",
    "description": "List all vendor payments made.",
    "input_schema": _NO_INPUT,
}

LIST_CREDIT_NOTES_TOOL: dict[str, Any] = {
    "name": "list_credit_notes",
    "description": "List all credit notes.",
    "input_schema": _NO_INPUT,
}

LIST_ITEMS_TOOL: dict[str, Any] = {
    "name": "list_items",
    "description": "List all products, services and items.",
    "input_schema": _NO_INPUT,
}

LIST_TAXES_TOOL: dict[str, Any] = {
    "name": "list_taxes",
    "description": "List all configured tax rates.",
    "input_schema": _NO_INPUT,
}

# === Single Record Tools ===


def _get_tool(name: str, id_field: str, description: str) -> dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "input_schema": {
            "type": "object",
            "properties": {id_field: {"type": "string", "description": "Record ID"}},
            "required": [id_field],
        },
    }


GET_INVOICE_TOOL = _get_tool("get_invoice", "invoice_id", "Get full details of one invoice, including line items.")
GET_BILL_TOOL = _get_tool("get_bill", "bill_id", "Get full details of one bill.")
GET_EXPENSE_TOOL = _get_tool("get_expense", "expense_id", "Get full details of one expense.")
GET_CONTACT_TOOL = _get_tool("get_contact", "contact_id", "Get full details of a customer or vendor.")
GET_BANK_ACCOUNT_TOOL = _get_tool("get_bank_account", "account_id", "Get details of one bank account.")

GET_ORGANIZATION_TOOL: dict[str, Any] = {
    "name": "get_organization",
    "description": "Get organization/company details.",
    "input_schema": _NO_INPUT,
}

# === Create Tools ===


def _create_tool(name: str, data_field: str, description: str, shape: str) -> dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "input_schema": {
            "type": "object",
            "properties": {data_field: {"type": "object", "description": shape}},
            "required": [data_field],
        },
    }


CREATE_INVOICE_TOOL = _create_tool(
    "create_invoice",
    "invoice_data",
    "Create a new invoice. Requires customer_id and line items.",
    "Invoice data: { customer_id, date, due_date, line_items: [{ name, description, rate, quantity }], notes, terms }",
)
CREATE_BILL_TOOL = _create_tool(
    "create_bill",
    "bill_data",
    "Create a new bill (vendor invoice).",
    "Bill data: { vendor_id, bill_number, date, due_date, line_items: [{ account_id, description, amount }] }",
)
CREATE_EXPENSE_TOOL = _create_tool(
    "create_expense",
    "expense_data",
    "Create a new expense record.",
    "Expense data: { account_id, date, amount, vendor_id, description, is_billable, customer_id }",
)
CREATE_CUSTOMER_PAYMENT_TOOL = _create_tool(
    "create_customer_payment",
    "payment_data",
    "Record a customer payment received.",
    "Payment data: { customer_id, payment_mode, amount, date, invoices: [{ invoice_id, amount_applied }] }",
)
CREATE_VENDOR_PAYMENT_TOOL = _create_tool(
    "create_vendor_payment",
    "payment_data",
    "Record a vendor payment made.",
    "Payment data: { vendor_id, payment_mode, amount, date, bills: [{ bill_id, amount_applied }] }",
)
CREATE_JOURNAL_ENTRY_TOOL = _create_tool(
    "create_journal_entry",
    "journal_data",
    "Create a manual journal entry for adjustments.",
    "Journal data: { journal_date, reference_number, notes, line_items: [{ account_id, debit_or_credit, amount, description }] }",
)
CREATE_CONTACT_TOOL = _create_tool(
    "create_contact",
    "contact_data",
    "Create a new customer or vendor contact.",
    "Contact data: { contact_name, contact_type (customer/vendor), email, phone, billing_address }",
)
CREATE_BANK_TRANSACTION_TOOL = _create_tool(
    "create_bank_transaction",
    "transaction_data",
    "Record a bank transaction manually.",
    "Transaction data: { from_account_id, to_account_id, transaction_type, amount, date, description }",
)

# === Update Tools ===


def _update_tool(name: str, id_field: str, data_field: str, description: str) -> dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "input_schema": {
            "type": "object",
            "properties": {
                id_field: {"type": "string", "description": "ID of the record to update"},
                data_field: {"type": "object", "description": "Fields to update"},
            },
            "required": [id_field, data_field],
        },
    }


UPDATE_INVOICE_TOOL = _update_tool("update_invoice", "invoice_id", "invoice_data", "Update an existing invoice.")
UPDATE_BILL_TOOL = _update_tool("update_bill", "bill_id", "bill_data", "Update an existing bill.")
UPDATE_EXPENSE_TOOL = _update_tool("update_expense", "expense_id", "expense_data", "Update an existing expense.")
UPDATE_CONTACT_TOOL = _update_tool("update_contact", "contact_id", "contact_data", "Update an existing contact.")

# === Action Tools ===

SEND_INVOICE_TOOL: dict[str, Any] = {
    "name": "send_invoice",
    "description": "Email an invoice to the customer.",
    "input_schema": {
        "type": "object",
        "properties": {
            "invoice_id": {"type": "string", "description": "Invoice ID to send"},
            "email_data": {
                "type": "object",
                "description": "Optional: { to_mail_ids, subject, body }",
            },
        },
        "required": ["invoice_id"],
    },
}

MARK_INVOICE_SENT_TOOL: dict[str, Any] = {
    "name": "mark_invoice_sent",
    "description": "Mark a draft invoice as sent without emailing it.",
    "input_schema": {
        "type": "object",
        "properties": {"invoice_id": {"type": "string", "description": "Invoice ID"}},
        "required": ["invoice_id"],
    },
}

CATEGORIZE_TRANSACTION_TOOL: dict[str, Any] = {
    "name": "categorize_transaction",
    "description": "Categorize an uncategorized bank transaction to a specific account.",
    "input_schema": {
        "type": "object",
        "properties": {
            "transaction_id": {"type": "string", "description": "Bank transaction ID"},
            "account_id": {
                "type": "string",
                "description": "Chart of account ID to categorize into",
            },
            "transaction_data": {
                "type": "object",
                "description": "Additional data like vendor_id, description",
            },
        },
        "required": ["transaction_id", "account_id"],
    },
}

MATCH_BANK_TRANSACTION_TOOL: dict[str, Any] = {
    "name": "match_bank_transaction",
    "description": "Match a bank transaction to an existing invoice or bill for reconciliation.",
    "input_schema": {
        "type": "object",
        "properties": {
            "transaction_id": {"type": "string", "description": "Bank transaction ID"},
            "match_data": {
                "type": "object",
                "description": "Match data: { transactions_to_be_matched: [{ transaction_id, transaction_type }] }",
            },
        },
        "required": ["transaction_id", "match_data"],
    },
}

GET_UNCATEGORIZED_TRANSACTIONS_TOOL: dict[str, Any] = {
    "name": "get_uncategorized_transactions",
    "description": "Get all uncategorized bank transactions of one bank account.",
    "input_schema": {
        "type": "object",
        "properties": {"account_id": {"type": "string", "description": "Bank account ID"}},
        "required": ["account_id"],
    },
}

GET_MATCHING_TRANSACTIONS_TOOL: dict[str, Any] = {
    "name": "get_matching_transactions",
    "description": "Find potential matches for a bank transaction (for reconciliation).",
    "input_schema": {
        "type": "object",
        "properties": {
            "transaction_id": {
                "type": "string",
                "description": "Bank transaction ID to find matches for",
            },
        },
        "required": ["transaction_id"],
    },
}

# === Tool Collections ===

READ_ONLY_TOOLS: list[dict[str, Any]] = [
    LIST_INVOICES_TOOL,
    LIST_BILLS_TOOL,
    LIST_EXPENSES_TOOL,
    LIST_CONTACTS_TOOL,
    LIST_BANK_ACCOUNTS_TOOL,
    LIST_BANK_TRANSACTIONS_TOOL,
    LIST_CHART_OF_ACCOUNTS_TOOL,
    LIST_JOURNALS_TOOL,
    LIST_CUSTOMER_PAYMENTS_TOOL,
    LIST_VENDOR_PAYMENTS_TOOL,
    LIST_CREDIT_NOTES_TOOL,
    LIST_ITEMS_TOOL,
    LIST_TAXES_TOOL,
    GET_INVOICE_TOOL,
    GET_BILL_TOOL,
    GET_EXPENSE_TOOL,
    GET_CONTACT_TOOL,
    GET_BANK_ACCOUNT_TOOL,
    GET_ORGANIZATION_TOOL,
    GET_UNCATEGORIZED_TRANSACTIONS_TOOL,
    GET_MATCHING_TRANSACTIONS_TOOL,
]

BOOKKEEPER_TOOLS: list[dict[str, Any]] = [
    *READ_ONLY_TOOLS,
    # Writes
    CREATE_INVOICE_TOOL,
    CREATE_BILL_TOOL,
    CREATE_EXPENSE_TOOL,
    CREATE_CUSTOMER_PAYMENT_TOOL,
    CREATE_VENDOR_PAYMENT_TOOL,
    CREATE_JOURNAL_ENTRY_TOOL,
    CREATE_CONTACT_TOOL,
    CREATE_BANK_TRANSACTION_TOOL,
    UPDATE_INVOICE_TOOL,
    UPDATE_BILL_TOOL,
    UPDATE_EXPENSE_TOOL,
    UPDATE_CONTACT_TOOL,
    # Actions
    SEND_INVOICE_TOOL,
    MARK_INVOICE_SENT_TOOL,
    CATEGORIZE_TRANSACTION_TOOL,
    MATCH_BANK_TRANSACTION_TOOL,
]
