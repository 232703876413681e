"""Command-line entry point: run the API, print reports, export PDFs, sync."""

import argparse
import asyncio
import json
import sys
from datetime import date
from typing import Any

import structlog

from maintup_ledger.config import configure_logging, get_settings
from maintup_ledger.context import LedgerContext

logger = structlog.get_logger(__name__)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from maintup_ledger.api import create_app

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )
    return 0


async def _load_context() -> LedgerContext:
    ctx = LedgerContext()
    await ctx.load()
    if not ctx.api_available:
        logger.warning("using_local_snapshot", unsynced=ctx.unsynced)
    return ctx


async def _report(args: argparse.Namespace) -> int:
    ctx = await _load_context()
    try:
        data: Any
        if args.kind == "annual":
            data = ctx.annual_report(args.year).to_wire()
        elif args.kind == "monthly":
            data = ctx.monthly_report(args.month, args.year).to_wire()
        elif args.kind == "office":
            data = [entry.to_wire() for entry in ctx.office_costs_by_type(args.year)]
        else:
            data = [entry.to_wire() for entry in ctx.monthly_data(args.year)]
    finally:
        await ctx.close()
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


async def _export(args: argparse.Namespace) -> int:
    from maintup_ledger.export import export_annual_pdf, export_monthly_pdf

    ctx = await _load_context()
    try:
        if args.kind == "annual":
            output = args.output or f"annual-report-{args.year}.pdf"
            export_annual_pdf(ctx.annual_report(args.year), output, scale=args.scale)
        else:
            output = args.output or f"monthly-report-{args.year}-{args.month:02d}.pdf"
            export_monthly_pdf(ctx.monthly_report(args.month, args.year), output, scale=args.scale)
    finally:
        await ctx.close()
    print(output)
    return 0


async def _sync(args: argparse.Namespace) -> int:
    ctx = await _load_context()
    try:
        synced = await ctx.sync()
    finally:
        await ctx.close()
    if not synced:
        print("Sync failed; local data kept and flagged unsynced", file=sys.stderr)
        return 1
    print("Synced")
    return 0


def build_parser() -> argparse.ArgumentParser:
    today = date.today()
    parser = argparse.ArgumentParser(
        prog="maintup",
        description="Maintup Ledger: accounting API and reporting tools",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", type=str, default=None, help="Listen address (default: HOST)")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default: PORT)")

    for name, help_text in (("report", "Print a report as JSON"), ("export", "Export a report as PDF")):
        sub = subparsers.add_parser(name, help=help_text)
        kinds = ["annual", "monthly"] + (["series", "office"] if name == "report" else [])
        sub.add_argument("kind", choices=kinds)
        sub.add_argument("--year", type=int, default=today.year)
        sub.add_argument(
            "--month", type=int, default=today.month, choices=range(1, 13), metavar="1-12"
        )
        if name == "export":
            sub.add_argument("--output", "-o", type=str, default=None, help="PDF path")
            sub.add_argument("--scale", type=int, default=2, help="Bitmap scale factor")

    subparsers.add_parser("sync", help="Push the local snapshot to the API")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    if args.command == "serve":
        return _serve(args)
    handlers = {"report": _report, "export": _export, "sync": _sync}
    return asyncio.run(handlers[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
