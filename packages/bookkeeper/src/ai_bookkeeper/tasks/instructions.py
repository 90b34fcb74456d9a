"""Instruction templates for each task type."""

from ai_bookkeeper.config import get_settings
from ai_bookkeeper.tasks.models import Task, TaskType

_CATEGORIZE = """Review all bank accounts for uncategorized transactions. For each uncategorized transaction:
1. Use list_bank_accounts to find all bank accounts
2. For each account, use get_uncategorized_transactions to find uncategorized transactions
3. Categorize them based on the description, amount, and payee
4. Apply categorization using the categorize_transaction tool
5. Summarize what you categorized

This is for {business}. Common categories:
- Fuel purchases from gas stations
- Vehicle maintenance and repairs
- Insurance payments
- Driver wages
- Highway tolls
- Office supplies and admin

Report back what you did."""

_OVERDUE_FOLLOWUP = """Check for overdue invoices and prepare a summary:
1. Use list_invoices with status "overdue" to find all overdue invoices
2. For each overdue invoice, note:
   - Invoice number, customer name, amount, days overdue
   - If over 90 days: critical
   - If over 30 days: warning
3. Summarize the total outstanding amount
4. Recommend which invoices need immediate follow-up
5. Suggest if any payment reminders should be sent

Provide a clear summary with actionable recommendations."""

_RECONCILE = """Review bank accounts for unmatched transactions:
1. List all bank accounts
2. For each account, check for transactions that can be matched to invoices or bills
3. Match transactions where you have high confidence (exact amount match)
4. Report any transactions you couldn't match and suggest what they might be
5. Summarize the reconciliation status

Use the match_bank_transaction tool for high-confidence matches.
For uncertain matches, just report them."""

_UPCOMING_BILLS = """Check for upcoming bills due in the next 7 days:
1. Use list_bills to get all open bills
2. Filter for bills due within 7 days
3. Check if payments are already scheduled
4. Calculate the total amount due
5. Flag any bills that might cause cash flow issues

Provide a summary with:
- List of bills due soon
- Total amount due
- Any cash flow concerns
- Recommended actions"""

_HEALTH_CHECK = """Perform a daily financial health check for {business}:
1. Check bank account balances (list_bank_accounts)
2. Total outstanding receivables (list_invoices with status "sent" and "overdue")
3. Total outstanding payables (list_bills with status "open")
4. Recent expenses in the last 7 days (list_expenses)
5. Any flagged or unusual items

Provide a brief dashboard-style summary:
- Cash Position: total across bank accounts
- Receivables: total outstanding
- Payables: total outstanding
- Net position
- Any concerns or action items"""

TASK_INSTRUCTIONS: dict[TaskType, str] = {
    TaskType.CATEGORIZE_TRANSACTIONS: _CATEGORIZE,
    TaskType.OVERDUE_FOLLOWUP: _OVERDUE_FOLLOWUP,
    TaskType.RECONCILE_TRANSACTIONS: _RECONCILE,
    TaskType.UPCOMING_BILLS: _UPCOMING_BILLS,
    TaskType.HEALTH_CHECK: _HEALTH_CHECK,
}


def build_instruction(task: Task, business: str | None = None) -> str:
    """Instruction text sent to the model for ``task``.

    Custom tasks use their description verbatim. A task that was answered
    after asking for input carries the exchange along.
    """
    template = TASK_INSTRUCTIONS.get(task.type)
    if template is None:
        instruction = task.description
    else:
        instruction = template.format(business=business or get_settings().business_context)

    if task.question and task.answer:
        instruction += (
            f"\n\nEarlier you asked: {task.question}\n"
            f"The answer was: {task.answer}\n"
            "Continue the task using this answer."
        )
    return instruction
