"""Tests for summary aggregation."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from taxledger.engines.aggregator import SummaryAggregator, quantize
from taxledger.models.enums import TaxEventType
from taxledger.models.tax import TaxableTransaction, TaxTreatment


def _taxable(tx, event_type: TaxEventType, **figures) -> TaxableTransaction:
    treatment = TaxTreatment(event_type=event_type, classification="test", reason="test")
    return TaxableTransaction(transaction=tx, treatment=treatment, **figures)


class TestQuantize:
    def test_half_up(self):
        assert quantize(Decimal("1.005"), 2) == Decimal("1.01")
        assert quantize(Decimal("-1.005"), 2) == Decimal("-1.01")
        assert quantize(Decimal("2.5"), 0) == Decimal("3")


class TestSummaryAggregator:
    def setup_method(self):
        self.aggregator = SummaryAggregator()

    def test_totals(self, buy, sell):
        when = datetime(2024, 3, 1, tzinfo=UTC)
        taxables = [
            _taxable(buy("b1", when, "1", "100"), TaxEventType.ACQUISITION, acquisition_cost=Decimal("100")),
            _taxable(sell("s1", when, "1", "300"), TaxEventType.DISPOSAL, proceeds=Decimal("300"),
                     cost_basis=Decimal("100"), capital_gain=Decimal("200"), discount_amount=Decimal("100"),
                     taxable_amount=Decimal("100")),
            _taxable(sell("s2", when, "1", "50", asset="ETH", source="kraken"), TaxEventType.DISPOSAL,
                     proceeds=Decimal("50"), cost_basis=Decimal("80"), capital_loss=Decimal("30"),
                     taxable_amount=Decimal("-30")),
        ]
        summary = self.aggregator.summarize(taxables)

        assert summary.total_disposals == 2
        assert summary.total_acquisitions == 1
        assert summary.total_capital_gains == Decimal("200.00")
        assert summary.total_capital_losses == Decimal("30.00")
        assert summary.net_capital_gain == Decimal("170.00")
        assert summary.cgt_discount == Decimal("100.00")
        assert summary.taxable_capital_gain == Decimal("70.00")
        assert summary.net_taxable_amount == Decimal("70.00")
        assert list(summary.by_source) == ["binance", "kraken"]
        assert summary.by_asset["BTC"].disposals == 1
        assert summary.by_asset["BTC"].acquisitions == 1
        assert summary.by_asset["ETH"].net_loss == Decimal("30.00")
        assert summary.by_month["2024-03"].transactions == 3

    def test_income_and_deductions(self, sell):
        when = datetime(2024, 1, 5, tzinfo=UTC)
        taxables = [
            _taxable(sell("i1", when, "1", "1"), TaxEventType.INCOME, income_amount=Decimal("1000.005")),
            _taxable(sell("d1", when, "1", "1"), TaxEventType.DEDUCTIBLE, deductible_amount=Decimal("20")),
        ]
        summary = self.aggregator.summarize(taxables)
        assert summary.ordinary_income == Decimal("1000.01")
        assert summary.total_deductions == Decimal("20.00")
        assert summary.net_taxable_amount == Decimal("980.01")
        assert summary.total_income_events == 1

    def test_rounds_once_after_summing(self, sell):
        when = datetime(2024, 1, 5, tzinfo=UTC)
        taxables = [
            _taxable(sell(f"s{i}", when, "1", "1"), TaxEventType.DISPOSAL,
                     capital_gain=Decimal("0.004"), taxable_amount=Decimal("0.004"))
            for i in range(3)
        ]
        summary = self.aggregator.summarize(taxables)
        assert summary.total_capital_gains == Decimal("0.01")

    def test_empty(self):
        summary = self.aggregator.summarize([])
        assert summary.total_disposals == 0
        assert summary.net_taxable_amount == Decimal("0.00")
        assert summary.by_asset == {}

    def test_summary_is_frozen(self, buy):
        when = datetime(2024, 3, 1, tzinfo=UTC)
        summary = self.aggregator.summarize([
            _taxable(buy("b1", when, "1", "100"), TaxEventType.ACQUISITION, acquisition_cost=Decimal("100")),
        ])
        assert summary.by_source["binance"].total_value == Decimal("100.00")
        with pytest.raises(ValidationError):
            summary.total_capital_gains = Decimal("1")
        with pytest.raises(ValidationError):
            summary.by_asset["BTC"].acquisitions = 5
        with pytest.raises(ValidationError):
            summary.by_month["2024-03"].income = Decimal("1")
