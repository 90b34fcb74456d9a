"""Deterministic audit checks.

Each check is a pure function over ledger records (plain dicts as the ledger
returns them) and returns a list of findings.
"""

import math
from collections import defaultdict
from datetime import date, datetime
from typing import Any

from ai_bookkeeper.audit.models import Finding, Severity

Record = dict[str, Any]

OUTLIER_Z_THRESHOLD = 3.0
OUTLIER_MIN_AMOUNT = 100.0
OUTLIER_MIN_SAMPLES = 3
UNCATEGORIZED_CRITICAL_COUNT = 10
UNCATEGORIZED_MARKERS = ("uncategorized", "suspense", "ask my accountant")
AMOUNT_TOLERANCE = 0.01


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def check_overdue_invoices(invoices: list[Record], today: date | None = None) -> list[Finding]:
    """Overdue or partially paid invoices: >90 days critical, 31-90 warning."""
    today = today or date.today()
    findings = []

    for inv in invoices:
        if inv.get("status") not in ("overdue", "partially_paid"):
            continue
        due = _parse_date(inv.get("due_date"))
        if due is None:
            continue

        days = (today - due).days
        if days > 90:
            severity = Severity.CRITICAL
            extra = f" Balance due: ${_amount(inv.get('balance')):,.2f}."
        elif days > 30:
            severity = Severity.WARNING
            extra = ""
        else:
            continue

        number = inv.get("invoice_number", "")
        findings.append(
            Finding(
                finding_type="overdue_invoice",
                severity=severity,
                title=f"Invoice {number} is {days} days overdue",
                description=(
                    f"Invoice #{number} for {inv.get('customer_name', 'unknown customer')} "
                    f"totaling ${_amount(inv.get('total')):,.2f} has been overdue for "
                    f"{days} days.{extra}"
                ),
                entity_type="invoice",
                entity_id=str(inv.get("invoice_id", "")),
                amount=_amount(inv.get("balance")),
            )
        )
    return findings


def _group(records: list[Record], party_key: str) -> dict[tuple[Any, ...], list[Record]]:
    groups: dict[tuple[Any, ...], list[Record]] = defaultdict(list)
    for record in records:
        key = (record.get(party_key), record.get("date"), round(_amount(record.get("total")), 2))
        groups[key].append(record)
    return groups


def check_duplicates(invoices: list[Record], bills: list[Record]) -> list[Finding]:
    """Invoices sharing (customer, date, total) and bills sharing (vendor, date, total)."""
    findings = []

    for group in _group(invoices, "customer_id").values():
        if len(group) < 2:
            continue
        first = group[0]
        findings.append(
            Finding(
                finding_type="duplicate_invoice",
                severity=Severity.WARNING,
                title="Possible duplicate invoices: "
                + ", ".join(str(i.get("invoice_number", "")) for i in group),
                description=(
                    f"{len(group)} invoices with same customer, date, and amount "
                    f"(${_amount(first.get('total')):,.2f}) found. This may indicate "
                    "duplicate entries."
                ),
                entity_type="invoice",
                entity_id=str(first.get("invoice_id", "")),
                related_ids=[str(i.get("invoice_id", "")) for i in group],
                amount=_amount(first.get("total")),
            )
        )

    for group in _group(bills, "vendor_id").values():
        if len(group) < 2:
            continue
        first = group[0]
        findings.append(
            Finding(
                finding_type="duplicate_bill",
                severity=Severity.WARNING,
                title="Possible duplicate bills: "
                + ", ".join(str(b.get("bill_number", "")) for b in group),
                description=(
                    f"{len(group)} bills with same vendor, date, and amount "
                    f"(${_amount(first.get('total')):,.2f}) found."
                ),
                entity_type="bill",
                entity_id=str(first.get("bill_id", "")),
                related_ids=[str(b.get("bill_id", "")) for b in group],
                amount=_amount(first.get("total")),
            )
        )

    return findings


def check_payment_mismatches(
    invoices: list[Record],
    customer_payments: list[Record],
    vendor_payments: list[Record] | None = None,
) -> list[Finding]:
    """Paid invoices still carrying a balance, and payments with unused amounts."""
    findings = []

    for inv in invoices:
        balance = _amount(inv.get("balance"))
        if inv.get("status") != "paid" or abs(balance) < AMOUNT_TOLERANCE:
            continue
        number = inv.get("invoice_number", "")
        findings.append(
            Finding(
                finding_type="payment_mismatch",
                severity=Severity.CRITICAL,
                title=f"Invoice {number} marked paid but has balance",
                description=(
                    f'Invoice #{number} status is "paid" but still has a balance of '
                    f"${balance:,.2f}."
                ),
                entity_type="invoice",
                entity_id=str(inv.get("invoice_id", "")),
                amount=balance,
            )
        )

    payments = [(p, "customer_name") for p in customer_payments]
    payments += [(p, "vendor_name") for p in vendor_payments or []]
    for pay, party_key in payments:
        unused = _amount(pay.get("unused_amount"))
        if unused < AMOUNT_TOLERANCE:
            continue
        findings.append(
            Finding(
                finding_type="excess_payment",
                severity=Severity.INFO,
                title=f"Excess payment of ${unused:,.2f} from {pay.get(party_key, 'unknown')}",
                description=(
                    f"Payment #{pay.get('payment_number', '')} has ${unused:,.2f} in "
                    "unused/excess amount that should be applied or refunded."
                ),
                entity_type="payment",
                entity_id=str(pay.get("payment_id", "")),
                amount=unused,
            )
        )

    return findings


def _peer_z_score(values: list[float], index: int) -> tuple[float, float] | None:
    """Z-score of ``values[index]`` against the rest of its group, and the peer mean.

    Mean and population deviation exclude the scored sample. Returns None
    when the peers do not vary.
    """
    peers = values[:index] + values[index + 1:]
    mean = sum(peers) / len(peers)
    std = math.sqrt(sum((x - mean) ** 2 for x in peers) / len(peers))
    if std == 0:
        return None
    return (values[index] - mean) / std, mean


def check_unusual_amounts(expenses: list[Record]) -> list[Finding]:
    """Expenses far outside the usual range of their account."""
    by_account: dict[str, list[Record]] = defaultdict(list)
    for exp in expenses:
        by_account[exp.get("account_name") or "Unknown"].append(exp)

    findings = []
    for account, group in by_account.items():
        if len(group) < OUTLIER_MIN_SAMPLES:
            continue
        amounts = [_amount(exp.get("total")) for exp in group]

        for i, exp in enumerate(group):
            scored = _peer_z_score(amounts, i)
            if scored is None:
                continue
            z, mean = scored
            if abs(z) <= OUTLIER_Z_THRESHOLD or amounts[i] <= OUTLIER_MIN_AMOUNT:
                continue
            findings.append(
                Finding(
                    finding_type="unusual_amount",
                    severity=Severity.WARNING,
                    title=f"Unusual expense of ${amounts[i]:,.2f} in {account}",
                    description=(
                        f"Expense on {exp.get('date', 'unknown date')} for "
                        f"${amounts[i]:,.2f} is {abs(z):.1f} standard deviations from "
                        f"the mean (${mean:,.2f}) for {account}. This could be an error "
                        "or unusual charge."
                    ),
                    entity_type="expense",
                    entity_id=str(exp.get("expense_id", "")),
                    amount=amounts[i],
                )
            )
    return findings


def check_uncategorized(expenses: list[Record]) -> list[Finding]:
    """One finding summing expenses sitting in uncategorized or suspense accounts."""
    count = 0
    total = 0.0
    ids = []
    for exp in expenses:
        name = (exp.get("account_name") or "").lower()
        if not name or any(marker in name for marker in UNCATEGORIZED_MARKERS):
            count += 1
            total += _amount(exp.get("total"))
            ids.append(str(exp.get("expense_id", "")))

    if count == 0:
        return []

    return [
        Finding(
            finding_type="uncategorized_expenses",
            severity=(
                Severity.CRITICAL if count > UNCATEGORIZED_CRITICAL_COUNT else Severity.WARNING
            ),
            title=f"{count} uncategorized expenses totaling ${total:,.2f}",
            description=(
                f"Found {count} expenses that are uncategorized or in suspense accounts. "
                f"Total amount: ${total:,.2f}. These should be properly categorized for "
                "accurate reporting."
            ),
            entity_type="expense",
            related_ids=ids,
            amount=round(total, 2),
        )
    ]
