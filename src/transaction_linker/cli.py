"""Command-line interface for the transaction linker."""

import argparse
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from transaction_linker import __version__
from transaction_linker.config import Config, ConfigError, load_config
from transaction_linker.linking.auto_linker import AutoLinker
from transaction_linker.linking.service import LinkService
from transaction_linker.linking.store import JsonFileTransactionStore, StoreError
from transaction_linker.models.link import LinkSuggestion
from transaction_linker.parsers.base import ParseError
from transaction_linker.parsers.detector import ImportDetector
from transaction_linker.utils.decimal_utils import format_currency
from transaction_linker.utils.logging_config import get_logger, setup_logging

# Load environment variables from .env file (if it exists)
load_dotenv()

console = Console()
logger = get_logger(__name__)

MAX_LISTED_ERRORS = 10


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="transaction-linker",
        description=(
            "Import transaction CSV files and link marketplace card charges "
            "to the order line items they paid for"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s parse Retail.OrderHistory.1.csv --aggregate
  %(prog)s suggest transactions.json --user u1
  %(prog)s auto-link transactions.json --user u1 --dry-run
  %(prog)s unlink transactions.json txn-42
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings.yaml (default: config/settings.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Detect a CSV format and parse it")
    parse_cmd.add_argument("file", type=Path, help="CSV file to parse")
    parse_cmd.add_argument(
        "--aggregate",
        action="store_true",
        help="Amazon exports: one transaction per order instead of per item",
    )

    suggest_cmd = subparsers.add_parser("suggest", help="List link suggestions")
    suggest_cmd.add_argument("store", type=Path, help="JSON transaction store")
    suggest_cmd.add_argument("--user", required=True, help="User id to match")
    suggest_cmd.add_argument(
        "--min-confidence",
        type=int,
        default=None,
        help="Minimum confidence (default: matching.suggest_threshold)",
    )

    auto_cmd = subparsers.add_parser("auto-link", help="Link high-confidence matches")
    auto_cmd.add_argument("store", type=Path, help="JSON transaction store")
    auto_cmd.add_argument("--user", required=True, help="User id to link")
    auto_cmd.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be linked without changing the store",
    )

    unlink_cmd = subparsers.add_parser("unlink", help="Remove the link from a child transaction")
    unlink_cmd.add_argument("store", type=Path, help="JSON transaction store")
    unlink_cmd.add_argument("transaction_id", help="Child transaction id")

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level.

    Args:
        verbosity: Number of -v flags.

    Returns:
        Log level string.
    """
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def print_errors(title: str, errors: list[str], style: str = "red") -> None:
    """Print a capped list of messages."""
    if not errors:
        return
    console.print(f"\n[{style}]{title} ({len(errors)}):[/{style}]")
    for error in errors[:MAX_LISTED_ERRORS]:
        console.print(f"  - {error}")
    if len(errors) > MAX_LISTED_ERRORS:
        console.print(f"  ... and {len(errors) - MAX_LISTED_ERRORS} more")


def suggestions_table(title: str, suggestions: list[LinkSuggestion]) -> Table:
    """Render suggestions as a rich table."""
    table = Table(title=title)
    table.add_column("Parent")
    table.add_column("Date")
    table.add_column("Merchant")
    table.add_column("Amount", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Items total", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Level")

    for suggestion in suggestions:
        parent = suggestion.parent
        items_total = sum(child.amount for child in suggestion.children)
        table.add_row(
            parent.id,
            parent.date.isoformat(),
            parent.merchant,
            format_currency(parent.amount),
            str(len(suggestion.children)),
            format_currency(items_total),
            str(suggestion.confidence),
            suggestion.confidence_level.value,
        )
    return table


def parse_command(args: argparse.Namespace) -> int:
    """Parse a CSV file and show what was found."""
    detector = ImportDetector()
    try:
        result = detector.parse_file(args.file, aggregate_orders=args.aggregate)
    except ParseError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(f"[bold]Format:[/bold] {result.format_name} ({result.parser_name})")

    if result.transactions:
        table = Table(title=f"{len(result.transactions)} transactions")
        table.add_column("Date")
        table.add_column("Merchant")
        table.add_column("Description")
        table.add_column("Amount", justify="right")
        table.add_column("Income")
        for txn in result.transactions:
            table.add_row(
                txn.date.isoformat(),
                txn.merchant,
                txn.description,
                format_currency(txn.amount),
                "yes" if txn.is_income else "",
            )
        console.print(table)
        console.print(f"Total: {format_currency(result.total_amount)}")

    if result.skipped:
        console.print(f"[dim]Skipped {result.skipped} cancelled or zero-total orders[/dim]")
    print_errors("Warnings", result.warnings, style="yellow")
    print_errors("Errors", result.errors)

    return 0 if result.success else 1


def suggest_command(args: argparse.Namespace, config: Config) -> int:
    """List link suggestions for a user."""
    service = LinkService(JsonFileTransactionStore(args.store), config)
    suggestions = service.get_link_suggestions(args.user, args.min_confidence)

    if not suggestions:
        console.print("[yellow]No link suggestions found.[/yellow]")
        return 0

    console.print(suggestions_table("Link suggestions", suggestions))
    return 0


def auto_link_command(args: argparse.Namespace, config: Config) -> int:
    """Link high-confidence matches for a user."""
    service = LinkService(JsonFileTransactionStore(args.store), config)
    result = AutoLinker(service, dry_run=args.dry_run).auto_link(args.user)

    verb = "Would link" if args.dry_run else "Linked"
    console.print(
        f"{verb} {result.auto_linked_count} of {result.total_matches} matches, "
        f"{result.suggested_count} left for review"
    )
    if result.auto_linked:
        console.print(suggestions_table("Auto-linked", result.auto_linked))
    if result.suggested:
        console.print(suggestions_table("Suggested", result.suggested))
    print_errors("Errors", result.errors)

    return 0 if result.success else 1


def unlink_command(args: argparse.Namespace, config: Config) -> int:
    """Remove the link from one child transaction."""
    service = LinkService(JsonFileTransactionStore(args.store), config)
    response = service.remove_link(args.transaction_id)
    if not response.success:
        print_errors("Errors", response.errors)
        return 1

    console.print(f"[green]Unlinked {args.transaction_id}[/green]")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Arguments to parse (default: sys.argv).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    # Set up logging; the -v flags override the configured level
    log_level = get_log_level(args.verbose) if args.verbose else config.logging.level
    setup_logging(
        level=log_level,
        log_file=Path(config.logging.file) if config.logging.file else None,
        console_output=args.verbose > 0,
    )

    try:
        if args.command == "parse":
            return parse_command(args)
        if args.command == "suggest":
            return suggest_command(args, config)
        if args.command == "auto-link":
            return auto_link_command(args, config)
        if args.command == "unlink":
            return unlink_command(args, config)
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 2
