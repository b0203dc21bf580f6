"""Tests for report consistency checks."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from taxledger.models.enums import IssueSeverity
from taxledger.reports.generator import ReportContext, ReportGenerator
from taxledger.reports.validation import validate_report


@pytest.fixture
def report(au, fixed_now, fifo_history):
    return ReportGenerator(ReportContext(jurisdiction=au, clock=lambda: fixed_now)).generate(fifo_history, 2024)


def _codes(result) -> list[str]:
    return [issue.code for issue in result.issues]


def _with_summary(report, **changes):
    return report.model_copy(update={"summary": report.summary.model_copy(update=changes)})


class TestValidateReport:
    def test_generated_report_is_clean(self, report):
        result = validate_report(report)
        assert result.is_valid
        assert result.issues == []

    def test_discounted_report_is_clean(self, au, fixed_now, buy, sell):
        history = [
            buy("old", datetime(2022, 3, 1, tzinfo=UTC), "1", "20000"),
            sell("s1", datetime(2024, 2, 1, tzinfo=UTC), "1", "50000"),
        ]
        report = ReportGenerator(ReportContext(jurisdiction=au, clock=lambda: fixed_now)).generate(history, 2024)
        assert report.summary.cgt_discount == Decimal("15000.00")
        assert validate_report(report).is_valid

    def test_missing_id(self, report):
        result = validate_report(report.model_copy(update={"id": " "}))
        assert _codes(result) == ["MISSING_REPORT_ID"]
        assert not result.is_valid

    def test_inverted_period(self, report):
        period = report.period.model_copy(update={"start": report.period.end, "end": report.period.start})
        result = validate_report(report.model_copy(update={"period": period}))
        assert "INVALID_TAX_PERIOD_RANGE" in _codes(result)
        assert "UNUSUAL_TAX_PERIOD" not in _codes(result)

    def test_short_period_warns(self, report):
        period = report.period.model_copy(update={"start": datetime(2024, 1, 1, tzinfo=UTC)})
        result = validate_report(report.model_copy(update={"period": period}))
        assert "UNUSUAL_TAX_PERIOD" in _codes(result)
        # buy-1 and buy-2 now precede the period.
        assert "TRANSACTIONS_OUTSIDE_PERIOD" in _codes(result)

    def test_empty_report_warns(self, au, fixed_now):
        report = ReportGenerator(ReportContext(jurisdiction=au, clock=lambda: fixed_now)).generate([], 2024)
        result = validate_report(report)
        assert _codes(result) == ["NO_TRANSACTIONS"]
        assert result.is_valid

    def test_net_gain_mismatch(self, report):
        result = validate_report(_with_summary(report, net_capital_gain=Decimal("1.00")))
        assert "INVALID_NET_CAPITAL_GAIN" in _codes(result)

    def test_one_cent_rounding_tolerated(self, report):
        net = report.summary.net_capital_gain + Decimal("0.01")
        assert "INVALID_NET_CAPITAL_GAIN" not in _codes(validate_report(_with_summary(report, net_capital_gain=net)))

    def test_taxable_above_net(self, report):
        result = validate_report(_with_summary(report, taxable_capital_gain=Decimal("9999.00")))
        assert "INVALID_TAXABLE_GAIN" in _codes(result)

    def test_discount_without_discounted_lots(self, report):
        result = validate_report(_with_summary(report, cgt_discount=Decimal("100.00")))
        assert "INVALID_CGT_DISCOUNT" in _codes(result)

    def test_negative_amounts_and_counts(self, report):
        result = validate_report(_with_summary(report, total_capital_losses=Decimal("-5"), total_disposals=-1))
        assert "NEGATIVE_CAPITAL_AMOUNTS" in _codes(result)
        assert "NEGATIVE_TRANSACTION_COUNT" in _codes(result)

    def test_gain_and_loss_on_one_disposal(self, report):
        sale = report.find("sell-1").model_copy(update={"capital_loss": Decimal("1")})
        transactions = [sale if t.id == "sell-1" else t for t in report.transactions]
        result = validate_report(report.model_copy(update={"transactions": transactions}))
        assert "GAIN_AND_LOSS" in _codes(result)

    def test_metadata_warnings(self, report):
        metadata = report.metadata.model_copy(update={
            "total_transactions": 7, "complete": False, "generation_time_ms": 700_000.0,
        })
        result = validate_report(report.model_copy(update={"metadata": metadata}))
        severities = {issue.code: issue.severity for issue in result.issues}
        assert severities == {
            "METADATA_MISMATCH": IssueSeverity.WARNING,
            "INCOMPLETE_REPORT": IssueSeverity.WARNING,
            "SLOW_GENERATION": IssueSeverity.INFO,
        }
        assert result.is_valid
