"""Summary aggregation over taxable transactions."""

from collections import defaultdict
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from taxledger.models.enums import TaxEventType
from taxledger.models.reports import AssetSummary, MonthSummary, SourceSummary, TaxSummary
from taxledger.models.tax import TaxableTransaction

ZERO = Decimal("0")

Totals = dict[str, Decimal]


def quantize(amount: Decimal, precision: int) -> Decimal:
    """Round half-up to ``precision`` decimal places."""
    return amount.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)


def _add(totals: Totals, **amounts: Decimal | int) -> None:
    for key, amount in amounts.items():
        totals[key] = totals.get(key, ZERO) + amount


class SummaryAggregator:
    """Builds the period summary from taxable transactions alone.

    Sums are taken over exact amounts and rounded once at the end, so the
    result does not depend on how the input was chunked. The summary models
    are built only after every transaction has been counted.
    """

    def summarize(self, taxables: Iterable[TaxableTransaction], precision: int = 2) -> TaxSummary:
        counts = {TaxEventType.DISPOSAL: 0, TaxEventType.ACQUISITION: 0, TaxEventType.INCOME: 0}
        totals: Totals = {}
        by_asset: defaultdict[str, Totals] = defaultdict(dict)
        by_source: defaultdict[str, Totals] = defaultdict(dict)
        by_month: defaultdict[str, Totals] = defaultdict(dict)

        for item in taxables:
            event_type = item.event_type
            if event_type in counts:
                counts[event_type] += 1
            _add(
                totals,
                gains=item.capital_gain,
                losses=item.capital_loss,
                discount=item.discount_amount,
                taxable=item.taxable_amount,
                income=item.income_amount,
                deductions=item.deductible_amount,
            )

            _add(
                by_asset[item.asset],
                disposals=int(event_type == TaxEventType.DISPOSAL),
                acquisitions=int(event_type in (TaxEventType.ACQUISITION, TaxEventType.INCOME)),
                net_gain=item.capital_gain,
                net_loss=item.capital_loss,
                income=item.income_amount,
            )
            _add(
                by_source[item.source],
                transactions=1,
                total_value=item.proceeds + item.acquisition_cost,
                net_gain=item.net_gain,
            )
            if item.timestamp is not None:
                _add(
                    by_month[item.timestamp.strftime("%Y-%m")],
                    transactions=1,
                    gains=item.capital_gain,
                    losses=item.capital_loss,
                    income=item.income_amount,
                )

        def q(key: str, bucket: Totals = totals) -> Decimal:
            return quantize(bucket.get(key, ZERO), precision)

        def count(key: str, bucket: Totals) -> int:
            return int(bucket.get(key, 0))

        assets = {
            asset: AssetSummary(
                asset=asset,
                disposals=count("disposals", b),
                acquisitions=count("acquisitions", b),
                net_gain=q("net_gain", b),
                net_loss=q("net_loss", b),
                income=q("income", b),
            )
            for asset, b in sorted(by_asset.items())
        }
        sources = {
            source: SourceSummary(
                source=source,
                transactions=count("transactions", b),
                total_value=q("total_value", b),
                net_gain=q("net_gain", b),
            )
            for source, b in sorted(by_source.items())
        }
        months = {
            month: MonthSummary(
                month=month,
                transactions=count("transactions", b),
                gains=q("gains", b),
                losses=q("losses", b),
                income=q("income", b),
            )
            for month, b in sorted(by_month.items())
        }

        taxable = totals.get("taxable", ZERO)
        return TaxSummary(
            total_disposals=counts[TaxEventType.DISPOSAL],
            total_acquisitions=counts[TaxEventType.ACQUISITION],
            total_income_events=counts[TaxEventType.INCOME],
            total_capital_gains=q("gains"),
            total_capital_losses=q("losses"),
            net_capital_gain=quantize(totals.get("gains", ZERO) - totals.get("losses", ZERO), precision),
            cgt_discount=q("discount"),
            taxable_capital_gain=q("taxable"),
            ordinary_income=q("income"),
            total_deductions=q("deductions"),
            net_taxable_amount=quantize(
                taxable + totals.get("income", ZERO) - totals.get("deductions", ZERO), precision
            ),
            by_asset=assets,
            by_source=sources,
            by_month=months,
        )
