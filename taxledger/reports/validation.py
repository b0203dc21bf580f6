"""Consistency checks over a finished TaxReport.

The generator guarantees these relationships for reports it builds; the
checks exist for reports that were deserialized, edited or produced
elsewhere before they are filed.
"""

from decimal import Decimal

from taxledger.models.enums import IssueSeverity, TaxEventType
from taxledger.models.reports import TaxReport
from taxledger.models.validation import ValidationIssue, ValidationResult

# Rounded summary figures may disagree by up to one cent.
TOLERANCE = Decimal("0.01")
MIN_PERIOD_DAYS = 300
MAX_PERIOD_DAYS = 400
SLOW_GENERATION_MS = 600_000


def _issue(code: str, severity: IssueSeverity, message: str, field: str | None = None) -> ValidationIssue:
    return ValidationIssue(code=code, severity=severity, message=message, field=field)


def validate_report(report: TaxReport) -> ValidationResult:
    """Check a report's period, totals and metadata against each other."""
    issues: list[ValidationIssue] = []
    summary = report.summary

    if not report.id or not report.id.strip():
        issues.append(_issue("MISSING_REPORT_ID", IssueSeverity.ERROR, "Report id is required", "id"))

    period = report.period
    if period.start >= period.end:
        issues.append(_issue(
            "INVALID_TAX_PERIOD_RANGE", IssueSeverity.ERROR,
            f"Tax period start {period.start.isoformat()} is not before its end {period.end.isoformat()}",
            "period",
        ))
    else:
        days = (period.end - period.start).days
        if not MIN_PERIOD_DAYS <= days <= MAX_PERIOD_DAYS:
            issues.append(_issue(
                "UNUSUAL_TAX_PERIOD", IssueSeverity.WARNING, f"Tax period {period.label} spans {days} days", "period",
            ))

    if not report.transactions:
        issues.append(_issue("NO_TRANSACTIONS", IssueSeverity.WARNING, "Report contains no transactions"))
    outside = [
        t.id or "<no id>" for t in report.transactions
        if t.timestamp is None or not period.contains(t.timestamp)
    ]
    if outside:
        issues.append(_issue(
            "TRANSACTIONS_OUTSIDE_PERIOD", IssueSeverity.ERROR,
            f"{len(outside)} transaction(s) fall outside {period.label}: {', '.join(outside)}",
            "transactions",
        ))

    both = [
        t.id or "<no id>" for t in report.transactions
        if t.capital_gain > 0 and t.capital_loss > 0
    ]
    if both:
        issues.append(_issue(
            "GAIN_AND_LOSS", IssueSeverity.ERROR,
            f"Disposals report both a gain and a loss: {', '.join(both)}",
            "transactions",
        ))

    amounts = {
        "total_capital_gains": summary.total_capital_gains,
        "total_capital_losses": summary.total_capital_losses,
        "cgt_discount": summary.cgt_discount,
        "ordinary_income": summary.ordinary_income,
        "total_deductions": summary.total_deductions,
    }
    for name, amount in amounts.items():
        if amount < 0:
            issues.append(_issue(
                "NEGATIVE_CAPITAL_AMOUNTS", IssueSeverity.ERROR, f"{name} must be non-negative, got {amount}", name,
            ))

    counts = {
        "total_disposals": summary.total_disposals,
        "total_acquisitions": summary.total_acquisitions,
        "total_income_events": summary.total_income_events,
    }
    for name, count in counts.items():
        if count < 0:
            issues.append(_issue(
                "NEGATIVE_TRANSACTION_COUNT", IssueSeverity.ERROR, f"{name} must be non-negative, got {count}", name,
            ))

    expected_net = summary.total_capital_gains - summary.total_capital_losses
    if abs(summary.net_capital_gain - expected_net) > TOLERANCE:
        issues.append(_issue(
            "INVALID_NET_CAPITAL_GAIN", IssueSeverity.ERROR,
            f"Net capital gain {summary.net_capital_gain} does not equal gains less losses ({expected_net})",
            "net_capital_gain",
        ))

    if summary.taxable_capital_gain - summary.net_capital_gain > TOLERANCE:
        issues.append(_issue(
            "INVALID_TAXABLE_GAIN", IssueSeverity.ERROR,
            f"Taxable capital gain {summary.taxable_capital_gain} exceeds net capital gain {summary.net_capital_gain}",
            "taxable_capital_gain",
        ))

    # The discount is applied per lot, so it is bounded by the gains of the
    # discounted lots rather than by the netted disposal totals.
    discountable = sum(
        (
            lot.gain
            for t in report.transactions if t.event_type == TaxEventType.DISPOSAL
            for lot in t.lots if lot.discount_applied
        ),
        Decimal("0"),
    )
    if summary.cgt_discount - discountable > TOLERANCE:
        issues.append(_issue(
            "INVALID_CGT_DISCOUNT", IssueSeverity.ERROR,
            f"CGT discount {summary.cgt_discount} exceeds the discounted gains ({discountable})",
            "cgt_discount",
        ))

    metadata = report.metadata
    if metadata.total_transactions != len(report.transactions):
        issues.append(_issue(
            "METADATA_MISMATCH", IssueSeverity.WARNING,
            f"Metadata counts {metadata.total_transactions} transactions, report has {len(report.transactions)}",
            "metadata",
        ))
    if not metadata.complete:
        issues.append(_issue(
            "INCOMPLETE_REPORT", IssueSeverity.WARNING,
            f"Report was not run to completion (state {report.state})",
            "metadata",
        ))
    if metadata.generation_time_ms > SLOW_GENERATION_MS:
        issues.append(_issue(
            "SLOW_GENERATION", IssueSeverity.INFO,
            f"Report took {metadata.generation_time_ms / 1000:.0f}s to generate",
            "metadata",
        ))

    return ValidationResult(issues=issues)
