"""
CLI interface for SaaS Spend Analyzer.

Provides command-line access to every analysis.
"""

import json
import logging
import sqlite3
import sys
from typing import Any, Callable, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from saas_spend.config.loader import DEFAULT_CONFIG, load_analysis_config
from saas_spend.core.engine import (
    DEFAULT_FORECAST_MONTHS,
    DEFAULT_TREND_MONTHS,
    AnalysisEngine,
)
from saas_spend.core.opportunities import Priority
from saas_spend.demo.seed_demo_data import DEMO_ORGANIZATION, seed_demo_data
from saas_spend.storage.db import DEFAULT_DB_PATH
from saas_spend.storage.repository import get_repository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

ORG_OPTION = typer.Option(DEMO_ORGANIZATION, "--org", "-o", help="Organization to analyze")
JSON_OPTION = typer.Option(False, "--json", help="Print the result as JSON")

_PRIORITY_STYLES = {
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "dim",
}


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    db: str = typer.Option(
        DEFAULT_DB_PATH,
        "--db",
        envvar="SAAS_SPEND_DB",
        help="Path to the SQLite database"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file overriding analysis thresholds"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log each analysis step"
    )
):
    """SaaS Spend Analyzer CLI."""
    _configure_logging(verbose)
    ctx.obj = {"db": db, "config": config}
    if ctx.invoked_subcommand is None:
        console.print("SaaS Spend Analyzer - Use --help to see available commands")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True
    )


def _build_engine(ctx: typer.Context) -> AnalysisEngine:
    settings = ctx.obj or {}
    config_path = settings.get("config")
    config = load_analysis_config(config_path) if config_path else DEFAULT_CONFIG
    return AnalysisEngine(get_repository(settings.get("db", DEFAULT_DB_PATH)), config)


def _run_analysis(
    ctx: typer.Context,
    compute: Callable[[AnalysisEngine], Any],
    render: Callable[[Any], None],
    as_json: bool
) -> None:
    """Run one analysis and print it, mapping failures to exit codes."""
    try:
        result = compute(_build_engine(ctx))
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]No SaaS usage data found[/]")
            console.print("\nTo get started with SaaS Spend Analyzer:")
            console.print("1. Run `saas-spend init` to initialize the database")
            console.print("2. Import applications, licenses and usage records")
            console.print("   (or run `saas-spend seed-demo` for sample data)")
            console.print("3. Run this command again to see the analysis\n")
            sys.exit(EXIT_CODE_FAIL)
        console.print(f"[red]Database error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if as_json:
        data = result.to_dict() if hasattr(result, "to_dict") else [item.to_dict() for item in result]
        typer.echo(json.dumps({"success": True, "data": data}, indent=2))
    else:
        render(result)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def init(ctx: typer.Context):
    """Initialize the SaaS Spend Analyzer database."""
    try:
        initialize_schema(ctx.obj["db"])
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("seed-demo")
def seed_demo(ctx: typer.Context, org: str = ORG_OPTION):
    """Load a demo organization with six months of usage."""
    try:
        count = seed_demo_data(ctx.obj["db"], org)
        console.print(f"[green]✓[/] Demo data inserted for {org} ({count:,} usage records)")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error seeding demo data:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def trends(
    ctx: typer.Context,
    org: str = ORG_OPTION,
    months: int = typer.Option(DEFAULT_TREND_MONTHS, "--months", "-m", min=1, help="Months to look back"),
    as_json: bool = JSON_OPTION
):
    """Show monthly license spend and growth."""
    _run_analysis(ctx, lambda engine: engine.analyze_cost_trends(org, months), _display_trends, as_json)


@app.command()
def utilization(ctx: typer.Context, org: str = ORG_OPTION, as_json: bool = JSON_OPTION):
    """Show seat utilization of every active license."""
    _run_analysis(ctx, lambda engine: engine.analyze_license_utilization(org), _display_utilization, as_json)


@app.command()
def savings(ctx: typer.Context, org: str = ORG_OPTION, as_json: bool = JSON_OPTION):
    """Show savings opportunities, largest first."""
    _run_analysis(ctx, lambda engine: engine.identify_savings_opportunities(org), _display_savings, as_json)


@app.command()
def patterns(ctx: typer.Context, org: str = ORG_OPTION, as_json: bool = JSON_OPTION):
    """Show daily usage patterns per application."""
    _run_analysis(ctx, lambda engine: engine.analyze_usage_patterns(org), _display_patterns, as_json)


@app.command()
def forecast(
    ctx: typer.Context,
    org: str = ORG_OPTION,
    months: int = typer.Option(DEFAULT_FORECAST_MONTHS, "--months", "-m", min=1, help="Months to project"),
    as_json: bool = JSON_OPTION
):
    """Project monthly spend for the coming months."""
    _run_analysis(ctx, lambda engine: engine.generate_cost_forecast(org, months), _display_forecast, as_json)


@app.command()
def report(ctx: typer.Context, org: str = ORG_OPTION, as_json: bool = JSON_OPTION):
    """Run every analysis and print a summary report."""
    _run_analysis(ctx, lambda engine: engine.generate_analysis_report(org), _display_report, as_json)


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"{'-' if amount < 0 else ''}${abs(amount):,.2f}"


def _format_percent(value: float, signed: bool = False) -> str:
    """Format a percentage, optionally with an explicit sign."""
    sign = "+" if signed and value >= 0 else ""
    return f"{sign}{value:,.1f}%"


def _display_trends(result) -> None:
    if not result:
        console.print("\n[dim]No usage data found for this period.[/]")
        return
    table = Table(title="Monthly License Spend")
    table.add_column("Month")
    table.add_column("Total Cost", justify="right")
    table.add_column("Growth", justify="right")
    for trend in result:
        table.add_row(trend.month, _format_currency(trend.total_cost), _format_percent(trend.growth_rate, signed=True))
    console.print(table)


def _display_utilization(result) -> None:
    if not result:
        console.print("\n[dim]No active licenses found.[/]")
        return
    table = Table(title="License Utilization")
    table.add_column("Application")
    table.add_column("Seats", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Inactive", justify="right")
    table.add_column("Utilization", justify="right")
    for usage in result:
        table.add_row(
            usage.application_name,
            str(usage.total_licenses),
            str(usage.used_licenses),
            str(usage.inactive_users),
            _format_percent(usage.utilization_rate)
        )
    console.print(table)


def _display_savings(result) -> None:
    if not result:
        console.print("\n[green]No savings opportunities found.[/]")
        return
    total = sum(o.potential_savings for o in result)
    console.print(f"\n[bold]Potential annual savings:[/bold] {_format_currency(total)}")
    for opportunity in result:
        style = _PRIORITY_STYLES[opportunity.priority]
        console.print(
            f"\n[{style}]{opportunity.priority.value.upper()}[/] {opportunity.title} "
            f"({_format_currency(opportunity.potential_savings)}/yr, "
            f"confidence {opportunity.confidence}%)"
        )
        console.print(f"  {opportunity.description}")
        console.print(f"  [dim]Action:[/] {opportunity.action_required}")


def _display_patterns(result) -> None:
    if not result:
        console.print("\n[dim]No usage recorded in the last 90 days.[/]")
        return
    table = Table(title="Usage Patterns (90 days)")
    table.add_column("Application")
    table.add_column("Avg Daily", justify="right")
    table.add_column("Peak", justify="right")
    table.add_column("Growth", justify="right")
    table.add_column("Low Days", justify="right")
    for pattern in result:
        table.add_row(
            pattern.application_name,
            str(pattern.average_daily_users),
            str(pattern.peak_usage),
            _format_percent(pattern.user_growth_rate, signed=True),
            str(len(pattern.low_usage_periods))
        )
    console.print(table)


def _display_forecast(result) -> None:
    if result[0].is_insufficient_data:
        console.print("\n[bold yellow]Insufficient data for a forecast[/]")
        for factor in result[0].factors + result[0].recommendations:
            console.print(f"  {factor}")
        return
    table = Table(title="Cost Forecast")
    table.add_column("Period")
    table.add_column("Predicted Cost", justify="right")
    table.add_column("Confidence", justify="right")
    for entry in result:
        table.add_row(entry.period, _format_currency(entry.predicted_cost), f"{entry.confidence}%")
    console.print(table)
    _print_lines("Factors", result[0].factors)
    _print_lines("Recommendations", result[0].recommendations)


def _print_lines(heading: str, lines: List[str]) -> None:
    console.print(f"\n[bold]{heading}:[/bold]")
    for line in lines:
        console.print(f"  - {line}")


def _display_report(result) -> None:
    summary = result.summary
    console.print(f"\n[bold]SaaS Spend Report[/bold] for {result.organization_id}")
    console.print("-" * 40)
    console.print(f"Licenses analyzed: {summary.total_applications}")
    console.print(f"Average utilization: {_format_percent(summary.average_utilization)}")
    console.print(f"Potential annual savings: {_format_currency(summary.total_potential_savings)}")
    console.print(f"High priority opportunities: {summary.high_priority_opportunities}")
    console.print(f"Generated at: {summary.generated_at:%Y-%m-%d %H:%M}")

    _display_trends(result.cost_trends)
    _display_utilization(result.utilization)
    _display_savings(result.savings_opportunities)
    _display_patterns(result.usage_patterns)
    _display_forecast(result.cost_forecast)


if __name__ == "__main__":
    app()
