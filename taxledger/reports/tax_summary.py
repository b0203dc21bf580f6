"""Plain-text tax report renderer."""

from decimal import Decimal
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from taxledger.models.reports import TaxReport, TaxStrategy

TEMPLATE_DIR = Path(__file__).parent / "templates"


def money(value: Decimal, places: int = 2) -> str:
    return f"{value:,.{places}f}"


class TaxReportRenderer:
    """Renders a TaxReport (and its strategies) as a human-readable text report."""

    def __init__(self) -> None:
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), trim_blocks=True, lstrip_blocks=True)
        self.env.filters["money"] = money

    def render(self, report: TaxReport, show_transactions: bool = True) -> str:
        template = self.env.get_template("tax_report.txt")
        return template.render(
            report=report,
            summary=report.summary,
            currency=report.jurisdiction.currency,
            stats=report.statistics(),
            show_transactions=show_transactions,
        )

    def render_strategies(self, strategies: list[TaxStrategy], currency: str) -> str:
        template = self.env.get_template("strategy_report.txt")
        return template.render(strategies=strategies, currency=currency)
