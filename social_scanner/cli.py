"""Command-line entry point for the social scanner."""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, TextIO

from . import __version__
from .config import Settings, load_settings
from .engine import HttpScanner, Scanner
from .errors import CatalogError, ConfigError, ScanError, SocialScannerError
from .output import write_results
from .result import format_scan_summary
from .rules import Rule, RuleCatalog
from .rules.filters import filter_by_category, group_by_category, sort_by_name
from .session import DEFAULT_TIMEOUT_MS, ScanSession, parse_csv, validate_options
from .utils import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_INTERRUPTED = 130


@dataclass
class CommandContext:
    """Collaborators shared by the command handlers."""

    settings: Settings
    catalog: RuleCatalog
    scanner: Scanner
    out: TextIO
    err: TextIO

    def echo(self, *parts: object) -> None:
        print(*parts, file=self.out)


Handler = Callable[[argparse.Namespace, CommandContext], int]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="social-scanner",
        description="Check where a username is registered across social networks.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--catalog",
        default=None,
        help="Path to a YAML rule catalog (defaults to the bundled one).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Diagnostic log level written to stderr.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Scan a username against the rule catalog.")
    scan.add_argument("username")
    scan.add_argument("-o", "--output", default=None, help="Directory to save the JSON report in.")
    scan.add_argument("-c", "--capture", action="store_true", help="Ask the engine for page screenshots.")
    scan.add_argument(
        "--screenshot-option",
        dest="screenshot_options",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Option forwarded to the screenshot engine (repeatable).",
    )
    scan.add_argument(
        "-t",
        "--timeout",
        default=str(DEFAULT_TIMEOUT_MS),
        metavar="MILLISECONDS",
        help="Per-site check timeout in milliseconds (0 disables it).",
    )
    scan.add_argument("-s", "--sort", action="store_true", help="Sort results alphabetically.")
    scan.add_argument(
        "--restrict-categories",
        default="",
        metavar="CSV",
        help="Comma separated list of categories to scan.",
    )
    scan.add_argument(
        "-r",
        "--restrict-rules",
        default="",
        metavar="CSV",
        help="Comma separated list of rule names to scan.",
    )

    listing = subparsers.add_parser("list", help="List the available rules.")
    listing.add_argument(
        "-g",
        "--categories",
        default="",
        metavar="CSV",
        help="Comma separated list of categories to show.",
    )
    listing.add_argument("-s", "--sort", action="store_true", help="Sort categories and rules alphabetically.")
    listing.add_argument(
        "--categories-only",
        action="store_true",
        help="Print only the category headings.",
    )
    return parser


def handle_scan(args: argparse.Namespace, ctx: CommandContext) -> int:
    validation = validate_options(
        {
            "timeout": args.timeout,
            "restrict_categories": args.restrict_categories,
            "restrict_rules": args.restrict_rules,
            "capture": args.capture,
            "screenshot_options": args.screenshot_options,
            "output": args.output,
            "sort": args.sort,
        }
    )
    options = validation.unwrap()

    session = ScanSession(ctx.scanner, ctx.catalog.get_rules())
    rules = session.resolve(options)
    ctx.echo("Scan started for:", args.username, "\n")
    ctx.echo("This operation may take a while so relax..\n")

    started = time.perf_counter()
    report = asyncio.run(session.run(args.username, options, rules))

    ctx.echo(format_scan_summary(args.username, report))

    if options.output:
        written = write_results(options.output, report.results, username=args.username)
        if written.ok:
            ctx.echo(f"\nReport written to {written.value}")
        else:
            print(f"warning: {written.error}", file=ctx.err)

    ctx.echo(f"\nScript execution time: {time.perf_counter() - started:.2f}s")
    return EXIT_OK


def handle_list(args: argparse.Namespace, ctx: CommandContext) -> int:
    categories = parse_csv(args.categories, "--categories")
    rules = ctx.catalog.get_rules()
    all_groups = group_by_category(rules)

    matched = filter_by_category(rules, categories)
    groups = group_by_category(matched)
    if categories:
        groups = {key: members for key, members in groups.items() if key in categories}

    if not groups:
        ctx.echo(f"There are no rules that match these categories: [{','.join(sorted(categories))}].\n")
        return EXIT_OK

    ctx.echo(f"There are {len(rules)} total rules in {len(all_groups)} categories.\n")

    keys: List[str] = sorted(groups) if args.sort else list(groups)
    for key in keys:
        members: Sequence[Rule] = sort_by_name(groups[key]) if args.sort else groups[key]
        ctx.echo("Category:", key)
        if args.categories_only:
            continue
        ctx.echo("=" * 45 + "\n")
        for rule in members:
            ctx.echo(" - Name:", rule.name)
            ctx.echo("   Url:", rule.url, "\n")

    ctx.echo(f"\ntotal rules: {len(rules)}")
    ctx.echo(f"total categories: {len(all_groups)}")
    ctx.echo(f"matched rules: {len(matched)}")
    return EXIT_OK


COMMANDS: Dict[str, Handler] = {
    "scan": handle_scan,
    "list": handle_list,
}


def main(
    argv: Optional[List[str]] = None,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
    scanner: Optional[Scanner] = None,
    catalog: Optional[RuleCatalog] = None,
) -> int:
    out = out or sys.stdout
    err = err or sys.stderr
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        configure_logging(args.log_level or settings.log_level, json_output=settings.log_json)
        ctx = CommandContext(
            settings=settings,
            catalog=catalog or RuleCatalog(args.catalog or settings.catalog_path),
            scanner=scanner or HttpScanner(concurrency=settings.concurrency),
            out=out,
            err=err,
        )
        return COMMANDS[args.command](args, ctx)
    except ConfigError as exc:
        print(f"error: invalid configuration: {exc}", file=err)
        return exc.exit_code
    except CatalogError as exc:
        print(f"error: invalid rule catalog: {exc}", file=err)
        return exc.exit_code
    except ScanError as exc:
        print(f"error: the scan failed: {exc}", file=err)
        return exc.exit_code
    except SocialScannerError as exc:
        print(f"error: {exc}", file=err)
        return exc.exit_code
    except KeyboardInterrupt:
        logger.warning("scan_interrupted", command=args.command)
        print("\nAborted, no results were saved.", file=err)
        return EXIT_INTERRUPTED


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
