"""
CLI interface for AI Usage Ledger.

Turns a tree of raw usage snapshots into the summary JSON tree, and
estimates token usage from timing telemetry.
"""

import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from ai_usage_ledger.config.loader import load_estimation_config, load_pricing_config
from ai_usage_ledger.core.estimation import (
    DEFAULT_ESTIMATION_CONFIG,
    aggregate_by_date,
    estimate_tokens,
)
from ai_usage_ledger.core.pipeline import SummaryBundle, run_pipeline
from ai_usage_ledger.core.pricing import PricingConfig, PricingKind
from ai_usage_ledger.storage.scanner import read_estimation_events, scan_raw_files
from ai_usage_ledger.storage.writer import write_all_outputs
from ai_usage_ledger.utils.dates import is_valid_date
from ai_usage_ledger.utils.logger import setup_logging

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """AI Usage Ledger CLI."""
    if ctx.invoked_subcommand is None:
        console.print("AI Usage Ledger - Use --help to see available commands")


def _load_pricing_or_exit(path: Path) -> PricingConfig:
    try:
        return load_pricing_config(str(path))
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading pricing config:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def summarize(
    raw_dir: Path = typer.Option(
        ...,
        "--raw-dir",
        "-r",
        help="Root of the {machine}/{provider}/*.json raw data tree"
    ),
    pricing: Path = typer.Option(
        ...,
        "--pricing",
        "-p",
        help="Pricing config (JSON or YAML)"
    ),
    output_dir: Path = typer.Option(
        Path("summary"),
        "--output-dir",
        "-o",
        help="Where to write the summary JSON tree"
    ),
    reference_date: Optional[str] = typer.Option(
        None,
        "--reference-date",
        "-d",
        help="Anchor date (YYYY-MM-DD) for the rolling windows; defaults to today"
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Compute everything but write nothing"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """
    Build daily, weekly, monthly, per-provider, per-machine and latest
    summaries from raw usage snapshots.
    """
    setup_logging(verbose)

    reference = reference_date or date.today().isoformat()
    if not is_valid_date(reference):
        console.print(f"[red]Invalid --reference-date:[/] {reference} (expected YYYY-MM-DD)")
        sys.exit(EXIT_CODE_FAIL)

    pricing_config = _load_pricing_or_exit(pricing)

    try:
        raw_files = scan_raw_files(raw_dir)
        bundle = run_pipeline(raw_files, pricing_config, reference)
        file_count = write_all_outputs(bundle, output_dir, dry_run=dry_run)
    except OSError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_summary(bundle, len(raw_files), file_count, output_dir, dry_run)
    sys.exit(EXIT_CODE_PASS)


@app.command("pricing")
def show_pricing(
    pricing: Path = typer.Option(
        ...,
        "--pricing",
        "-p",
        help="Pricing config (JSON or YAML)"
    )
):
    """Validate a pricing config and print its rate cards."""
    pricing_config = _load_pricing_or_exit(pricing)

    table = Table(title="Pricing")
    table.add_column("Provider")
    table.add_column("Model / prefix")
    table.add_column("Rates")
    table.add_column("Currency")

    for provider_id, provider in pricing_config.providers.items():
        if provider.kind == PricingKind.SUBSCRIPTION:
            sub = provider.subscription
            table.add_row(provider_id, sub.plan or "-", f"{sub.monthly_cost:,.2f}/month", sub.currency)
            continue
        for model_key, rates in provider.models.items():
            table.add_row(provider_id, model_key, _format_rates(rates), rates.currency)

    console.print(table)
    for pair, rate in sorted(pricing_config.exchange_rates.items()):
        console.print(f"{pair}: {rate}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def estimate(
    events: Path = typer.Option(
        ...,
        "--events",
        "-e",
        help="JSON file with 'timing' and 'bodyLen' event lists"
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Estimator settings (YAML or JSON); defaults are used when omitted"
    ),
    dates: Optional[List[str]] = typer.Option(
        None,
        "--date",
        "-d",
        help="Only estimate this date (YYYY-MM-DD); repeatable"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """
    Estimate daily token usage from request timing and body sizes.
    """
    setup_logging(verbose)

    for value in dates or []:
        if not is_valid_date(value):
            console.print(f"[red]Invalid --date:[/] {value} (expected YYYY-MM-DD)")
            sys.exit(EXIT_CODE_FAIL)

    estimation_config = DEFAULT_ESTIMATION_CONFIG
    if config is not None:
        try:
            estimation_config = load_estimation_config(str(config))
        except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
            console.print(f"[red]Error loading estimation config:[/] {str(e)}")
            sys.exit(EXIT_CODE_FAIL)

    try:
        timing, body = read_estimation_events(events)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error reading events:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    result = estimate_tokens(timing, body, date_filter=dates or None, config=estimation_config)
    days = aggregate_by_date(timing, body, date_filter=dates or None, config=estimation_config)

    table = Table(title="Estimated Usage")
    table.add_column("Date")
    table.add_column("Calls", justify="right")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Total", justify="right")
    for day in days.values():
        table.add_row(
            day.date,
            str(day.llm_calls),
            f"{day.est_input_tokens:,}",
            f"{day.est_output_tokens:,}",
            f"{day.est_total_tokens:,}",
        )
    console.print(table)

    console.print(f"Estimated input tokens: {result.total_est_input:,}")
    console.print(f"Estimated output tokens: {result.total_est_output:,}")
    console.print(f"Outliers replaced: {result.outlier_count} (p95 {result.p95_generation_ms:,} ms)")
    sys.exit(EXIT_CODE_PASS)


def _format_rates(rates) -> str:
    if rates.is_flat:
        return f"{rates.total_per_ktok:g}/KTok total"
    parts = []
    for label, value in (
        ("in", rates.input_per_mtok),
        ("out", rates.output_per_mtok),
        ("cache-w", rates.cache_creation_per_mtok),
        ("cache-r", rates.cache_read_per_mtok),
    ):
        if value is not None:
            parts.append(f"{label} {value:g}")
    return ", ".join(parts) + " /MTok"


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.2f}"


def _display_summary(
    bundle: SummaryBundle,
    raw_count: int,
    file_count: int,
    output_dir: Path,
    dry_run: bool
):
    """Display the run result and the last 7 days by provider."""
    console.print("\n[bold]AI Usage Summary[/bold]")
    console.print("-" * 40)
    console.print(f"Raw files scanned: {raw_count}")
    console.print(f"Days summarized: {len(bundle.daily)}")

    week = bundle.latest.last_7_days
    console.print(
        f"Last 7 days ({week.date_range.start} to {week.date_range.end}): "
        f"{week.totals.total_tokens:,} tokens, {_format_currency(week.totals.cost.total_usd)}"
    )

    if week.by_provider:
        table = Table()
        table.add_column("Provider")
        table.add_column("Quality")
        table.add_column("Tokens", justify="right")
        table.add_column("Cost (USD)", justify="right")
        for entry in week.by_provider:
            table.add_row(
                entry.provider,
                entry.data_quality.value,
                f"{entry.total_tokens:,}",
                _format_currency(entry.cost_usd),
            )
        console.print(table)

    if dry_run:
        console.print(f"\n[yellow]\\[dry-run][/] Would write {file_count} files")
    else:
        console.print(f"\n[green]✓[/] Wrote {file_count} files to {output_dir}")


if __name__ == "__main__":
    app()
