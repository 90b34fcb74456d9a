"""Command line entry point.

Usage:
    ai-bookkeeper chat "Which invoices are more than 60 days overdue?"
    ai-bookkeeper audit --severity=critical
    ai-bookkeeper daily --run
    ai-bookkeeper task "Create a bill for the Petro-Canada fuel receipt"
    ai-bookkeeper categorize <bank_account_id>
    ai-bookkeeper reconcile <bank_account_id>
    ai-bookkeeper report aging --start=2025-01-01
    ai-bookkeeper analyze "Which month had the highest fuel spend?" --data=fuel.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import structlog

from ai_bookkeeper.app import Bookkeeper
from ai_bookkeeper.audit.models import AuditProgress
from ai_bookkeeper.config import configure_logging
from ai_bookkeeper.errors import BookkeeperError
from ai_bookkeeper.reports.models import ReportType
from ai_bookkeeper.tasks.models import TaskType

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-bookkeeper",
        description="AI bookkeeper for a Zoho Books compatible ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s chat "What did we spend on fuel last month?"
  %(prog)s audit                      # Full audit, all findings
  %(prog)s daily --run                # Queue and run the daily jobs
  %(prog)s categorize 460000000048017 # Suggestions for one bank account
  %(prog)s report pnl --end=2025-06-30  # Profit and loss up to June
        """,
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    chat = sub.add_parser("chat", help="Ask the bookkeeper a question")
    chat.add_argument("message", nargs="+")

    audit = sub.add_parser("audit", help="Run a full audit of the books")
    audit.add_argument("--severity", choices=["critical", "warning", "info"])

    daily = sub.add_parser("daily", help="Queue the standard daily tasks")
    daily.add_argument("--run", action="store_true", help="Run the queue afterwards")

    task = sub.add_parser("task", help="Queue and run a custom task")
    task.add_argument("description", nargs="+")
    task.add_argument("--priority", choices=["high", "medium", "low"], default="medium")

    categorize = sub.add_parser("categorize", help="Categorization suggestions")
    categorize.add_argument("bank_account_id")

    reconcile = sub.add_parser("reconcile", help="Reconciliation suggestions")
    reconcile.add_argument("bank_account_id")

    report = sub.add_parser("report", help="Generate a narrative financial report")
    report.add_argument("report_type", choices=[t.value for t in ReportType])
    report.add_argument("--start", help="First date to include (YYYY-MM-DD)")
    report.add_argument("--end", help="Last date to include (YYYY-MM-DD)")
    report.add_argument("--detail", choices=["summary", "detailed"], default="detailed")
    report.add_argument("--instructions", help="Custom layout, mainly for custom reports")

    analyze = sub.add_parser("analyze", help="Ask a question about a JSON data file")
    analyze.add_argument("question", nargs="+")
    analyze.add_argument("--data", type=Path, help="JSON file with the data to analyze")
    analyze.add_argument("--type", dest="analysis_type", default="general")

    return parser


def _print_progress(progress: AuditProgress) -> None:
    print(f"[{progress.phase} {progress.progress}/{progress.total}] {progress.message}")


def _emit(items: list[Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps([item.to_dict() for item in items], indent=2, default=str))
        return
    for item in items:
        data = item.to_dict()
        if "severity" in data:
            print(f"[{data['severity'].upper():8}] {data['title']}")
        elif "status" in data:
            print(f"[{data['status']:11}] {data['title']}")
            if data.get("result"):
                print(data["result"])
        else:
            target = data.get("suggested_account_name") or data.get("match_description")
            print(
                f"{data['transaction_id']}: {data['description']} "
                f"-> {target} ({data['confidence']:.0%})"
            )


async def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        async with Bookkeeper() as bk:
            if args.command == "chat":
                result = await bk.chat(" ".join(args.message))
                print(result.text)
            elif args.command == "audit":
                findings = await bk.run_audit(
                    on_progress=None if args.json else _print_progress
                )
                if args.severity:
                    findings = [f for f in findings if f.severity.value == args.severity]
                _emit(findings, args.json)
            elif args.command == "daily":
                tasks = await bk.generate_daily_tasks()
                if args.run:
                    tasks = await bk.execute_pending_tasks()
                _emit(tasks, args.json)
            elif args.command == "task":
                description = " ".join(args.description)
                queued = await bk.tasks.enqueue(
                    TaskType.CUSTOM, description[:80], description, args.priority
                )
                _emit([await bk.execute_task(queued.id)], args.json)
            elif args.command == "categorize":
                _emit(await bk.categorization_suggestions(args.bank_account_id), args.json)
            elif args.command == "reconcile":
                _emit(await bk.reconciliation_suggestions(args.bank_account_id), args.json)
            elif args.command == "report":
                report = await bk.generate_report(
                    args.report_type,
                    args.start,
                    args.end,
                    detail_level=args.detail,
                    instructions=args.instructions,
                )
                if args.json:
                    print(json.dumps(report.to_dict(), indent=2))
                else:
                    print(f"# {report.title}\n")
                    print(report.content)
            elif args.command == "analyze":
                data = json.loads(args.data.read_text()) if args.data else None
                print(await bk.analyze(" ".join(args.question), data, args.analysis_type))
    except BookkeeperError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130
    except Exception as e:
        logger.exception("command_failed", command=args.command, error=str(e))
        return 1

    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
