"""Plain-text ledger summaries fed to the report prompt."""

from collections import defaultdict
from datetime import date
from typing import Any

from ai_bookkeeper.reports.models import ReportType

Records = list[dict[str, Any]]

TOP_CUSTOMERS = 10
TOP_VENDORS = 15

# (label, upper bound in days past due); the last bucket is open-ended
AGING_BUCKETS: list[tuple[str, int | None]] = [
    ("Current (not yet due)", 0),
    ("1-30 days", 30),
    ("31-60 days", 60),
    ("61-90 days", 90),
    ("Over 90 days", None),
]


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _amount(record: dict[str, Any], key: str) -> float:
    try:
        return float(record.get(key) or 0)
    except (TypeError, ValueError):
        return 0.0


def filter_by_date(
    records: Records, start: str | None, end: str | None, field: str = "date"
) -> Records:
    """Keep records dated inside [start, end]; undated records are kept."""
    if not start and not end:
        return records
    kept = []
    for record in records:
        value = record.get(field)
        if value:
            if start and value < start:
                continue
            if end and value > end:
                continue
        kept.append(record)
    return kept


def is_unpaid(invoice: dict[str, Any]) -> bool:
    return invoice.get("status") not in ("paid", "void", "draft")


def aging_buckets(invoices: Records, today: date) -> list[tuple[str, float, int]]:
    """Outstanding balance and count per aging bucket, by days past due."""
    totals = [0.0] * len(AGING_BUCKETS)
    counts = [0] * len(AGING_BUCKETS)
    for invoice in filter(is_unpaid, invoices):
        try:
            due = date.fromisoformat(str(invoice.get("due_date"))[:10])
        except ValueError:
            # No usable due date: treat as not yet due
            due = today
        days_past = (today - due).days
        for index, (_, limit) in enumerate(AGING_BUCKETS):
            if limit is None or days_past <= limit:
                totals[index] += _amount(invoice, "balance")
                counts[index] += 1
                break
    return [
        (label, totals[i], counts[i]) for i, (label, _) in enumerate(AGING_BUCKETS)
    ]


def _invoice_section(invoices: Records, report_type: ReportType, today: date) -> list[str]:
    paid = [i for i in invoices if i.get("status") == "paid"]
    unpaid = [i for i in invoices if is_unpaid(i)]
    overdue = [i for i in invoices if i.get("status") == "overdue"]

    lines = [
        f"=== INVOICES ({len(invoices)} total) ===",
        f"Total Revenue: {_money(sum(_amount(i, 'total') for i in invoices))}",
        f"Paid: {len(paid)} ({_money(sum(_amount(i, 'total') for i in paid))})",
        f"Unpaid: {len(unpaid)} "
        f"({_money(sum(_amount(i, 'balance') for i in unpaid))} outstanding)",
        f"Overdue: {len(overdue)} ({_money(sum(_amount(i, 'balance') for i in overdue))})",
    ]

    by_customer: dict[str, float] = defaultdict(float)
    for invoice in invoices:
        by_customer[invoice.get("customer_name") or "Unknown"] += _amount(invoice, "total")
    top = sorted(by_customer.items(), key=lambda item: item[1], reverse=True)[:TOP_CUSTOMERS]
    if top:
        lines.append("\nTop Customers by Revenue:")
        lines += [f"  {n}. {name}: {_money(total)}" for n, (name, total) in enumerate(top, 1)]

    if report_type is ReportType.AGING:
        lines.append("\n=== AGING ANALYSIS ===")
        lines += [
            f"{label}: {_money(total)} ({count} invoices)"
            for label, total, count in aging_buckets(invoices, today)
        ]
    return lines


def _expense_section(expenses: Records) -> list[str]:
    total = sum(_amount(e, "total") for e in expenses)
    lines = [
        f"=== EXPENSES ({len(expenses)} total) ===",
        f"Total Expenses: {_money(total)}",
    ]
    by_category: dict[str, float] = defaultdict(float)
    for expense in expenses:
        by_category[expense.get("account_name") or "Uncategorized"] += _amount(expense, "total")
    if by_category:
        lines.append("\nExpenses by Category:")
        for name, amount in sorted(by_category.items(), key=lambda item: item[1], reverse=True):
            share = amount / total * 100 if total > 0 else 0.0
            lines.append(f"  - {name}: {_money(amount)} ({share:.1f}%)")
    return lines


def _bill_section(bills: Records, report_type: ReportType) -> list[str]:
    lines = [
        f"=== BILLS ({len(bills)} total) ===",
        f"Total Bills: {_money(sum(_amount(b, 'total') for b in bills))}",
    ]
    if report_type is ReportType.VENDOR:
        vendors: dict[str, dict[str, float]] = defaultdict(
            lambda: {"total": 0.0, "count": 0, "paid": 0}
        )
        for bill in bills:
            vendor = vendors[bill.get("vendor_name") or "Unknown"]
            vendor["total"] += _amount(bill, "total")
            vendor["count"] += 1
            if bill.get("status") == "paid":
                vendor["paid"] += 1
        top = sorted(vendors.items(), key=lambda item: item[1]["total"], reverse=True)
        if top:
            lines.append("\nTop Vendors:")
            for n, (name, stats) in enumerate(top[:TOP_VENDORS], 1):
                lines.append(
                    f"  {n}. {name}: {_money(stats['total'])} "
                    f"({stats['count']} bills, {stats['paid']} paid)"
                )
    return lines


def build_financial_summary(
    report_type: ReportType,
    data: dict[str, Records],
    currency: str,
    start: str | None = None,
    end: str | None = None,
    today: date | None = None,
) -> str:
    """Summarize the fetched categories; categories not in ``data`` are left out."""
    today = today or date.today()
    lines = [
        f"Currency: {currency}",
        f"Report Period: {start or 'all time'} to {end or 'present'}",
        "",
    ]

    if "invoices" in data:
        invoices = filter_by_date(data["invoices"], start, end)
        lines += _invoice_section(invoices, report_type, today) + [""]
    if "expenses" in data:
        lines += _expense_section(filter_by_date(data["expenses"], start, end)) + [""]
    if "bills" in data:
        lines += _bill_section(filter_by_date(data["bills"], start, end), report_type) + [""]
    if "customer_payments" in data:
        payments = filter_by_date(data["customer_payments"], start, end)
        received = sum(_amount(p, "amount") for p in payments)
        lines += [
            "=== CUSTOMER PAYMENTS ===",
            f"Total Received: {_money(received)} ({len(payments)} payments)",
            "",
        ]
    if "vendor_payments" in data:
        payments = filter_by_date(data["vendor_payments"], start, end)
        paid_out = sum(_amount(p, "amount") for p in payments)
        lines += [
            "=== VENDOR PAYMENTS ===",
            f"Total Paid Out: {_money(paid_out)} ({len(payments)} payments)",
            "",
        ]
    if "bank_accounts" in data:
        # Balances are point-in-time, never date filtered
        accounts = data["bank_accounts"]
        lines += [
            "=== BANK ACCOUNTS ===",
            f"Total Cash: {_money(sum(_amount(a, 'balance') for a in accounts))}",
        ]
        lines += [
            f"  - {a.get('account_name', 'Unnamed')}: {_money(_amount(a, 'balance'))}"
            for a in accounts
        ]
        lines.append("")

    return "\n".join(lines)
