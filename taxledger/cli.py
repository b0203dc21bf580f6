"""Typer CLI interface for taxledger."""

import json
import logging
from pathlib import Path

import typer

from taxledger.exceptions import TaxComputationError
from taxledger.models.enums import RiskTolerance

app = typer.Typer(
    name="taxledger",
    help="taxledger: crypto capital gains and income reports.",
)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """taxledger: crypto capital gains and income reports."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_transactions(file_path: Path) -> list:
    """Parse a transaction file, echoing per-record errors. Exits if nothing loads."""
    from taxledger.ingestion.manual import JsonTransactionAdapter

    try:
        result = JsonTransactionAdapter().parse(file_path)
    except (FileNotFoundError, TaxComputationError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    for error in result.errors:
        typer.echo(f"Warning: skipped {error}", err=True)
    if not result.transactions:
        typer.echo(f"Error: No transactions loaded from {file_path}", err=True)
        raise typer.Exit(1)
    return result.transactions


@app.command()
def report(
    file: Path = typer.Argument(..., help="JSON file of normalized transactions"),
    year: int = typer.Option(..., "--year", "-y", help="Tax year, labelled by the year it ends in"),
    jurisdiction_code: str = typer.Option("AU", "--jurisdiction", help="Jurisdiction preset"),
    chunk_size: int = typer.Option(10_000, "--chunk-size", min=1, help="Transactions per processing chunk"),
    strict: bool = typer.Option(False, "--strict", help="Fail on the first invalid transaction"),
    optimize: bool = typer.Option(False, "--optimize", help="Include tax strategies"),
    prices_file: Path | None = typer.Option(
        None, "--prices", help="JSON object of current unit prices, e.g. {\"BTC\": 95000}"
    ),
    risk: RiskTolerance = typer.Option(
        RiskTolerance.MODERATE, "--risk", case_sensitive=False, help="Risk tolerance for strategies"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    check: bool = typer.Option(False, "--check", help="Validate report consistency; exit 1 on errors"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Generate a tax report for a tax year."""
    from taxledger.ingestion.manual import load_prices
    from taxledger.models.jurisdiction import load_preset
    from taxledger.reports.generator import ReportContext, ReportGenerator, ReportOptions
    from taxledger.reports.tax_summary import TaxReportRenderer
    from taxledger.reports.validation import validate_report

    _configure_logging(verbose)
    try:
        jurisdiction = load_preset(jurisdiction_code)
    except KeyError as exc:
        typer.echo(f"Error: {exc.args[0]}", err=True)
        raise typer.Exit(1)

    transactions = _load_transactions(file)
    prices = {}
    if prices_file is not None:
        try:
            prices = load_prices(prices_file)
        except (FileNotFoundError, TaxComputationError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1)

    options = ReportOptions(
        chunk_size=chunk_size,
        strict=strict,
        include_optimization=optimize,
        risk_tolerance=risk,
        current_prices=prices,
    )
    generator = ReportGenerator(ReportContext(jurisdiction=jurisdiction))
    try:
        tax_report = generator.generate(transactions, year, options)
    except TaxComputationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    if as_json:
        typer.echo(tax_report.model_dump_json(indent=2))
    else:
        renderer = TaxReportRenderer()
        typer.echo(renderer.render(tax_report))
        if tax_report.strategies is not None:
            typer.echo(renderer.render_strategies(tax_report.strategies, jurisdiction.currency))

    if check:
        result = validate_report(tax_report)
        for issue in result.issues:
            typer.echo(f"{issue.severity}: {issue.code}: {issue.message}", err=True)
        if not result.is_valid:
            raise typer.Exit(1)


@app.command()
def classify(
    file: Path = typer.Argument(..., help="JSON file of normalized transactions"),
    jurisdiction_code: str = typer.Option("AU", "--jurisdiction", help="Jurisdiction preset"),
    as_json: bool = typer.Option(False, "--json", help="Print treatments as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Show the tax treatment of each transaction without computing gains."""
    from taxledger.engines.classifier import TransactionClassifier
    from taxledger.models.jurisdiction import load_preset

    _configure_logging(verbose)
    try:
        jurisdiction = load_preset(jurisdiction_code)
    except KeyError as exc:
        typer.echo(f"Error: {exc.args[0]}", err=True)
        raise typer.Exit(1)

    classifier = TransactionClassifier()
    rows = []
    for transaction in _load_transactions(file):
        treatment = classifier.classify(transaction, jurisdiction)
        rows.append((transaction, treatment))

    if as_json:
        payload = [
            {"id": tx.id, "kind": tx.kind, **treatment.model_dump(mode="json")}
            for tx, treatment in rows
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    for tx, treatment in rows:
        flags = []
        if treatment.personal_use_exempt:
            flags.append("personal-use exempt")
        if treatment.low_confidence:
            flags.append("low confidence")
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        typer.echo(f"{tx.id or '-':<16} {tx.kind:<18} {treatment.event_type:<12} {treatment.classification}{suffix}")


if __name__ == "__main__":
    app()
