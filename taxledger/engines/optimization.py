"""Tax optimization engine.

Reads finished taxable transactions and closing holdings and suggests
actions that could lower tax. Never mutates its inputs; reported figures are
unaffected by anything suggested here.

Strategies implemented:
  Loss harvesting (sell-only and sell-and-reacquire)
  Discount timing            Personal-use classification
  Disposal timing            Lot selection

Savings are estimates at an assumed marginal rate (30% by default).
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from taxledger.engines.ledger import draw_from
from taxledger.models.enums import (
    ComplianceTier,
    CostBasisMethod,
    RiskTolerance,
    StrategyType,
    TaxEventType,
)
from taxledger.models.jurisdiction import TaxJurisdiction, TaxPeriod
from taxledger.models.lot import Lot
from taxledger.models.reports import TaxStrategy
from taxledger.models.tax import TaxableTransaction

ZERO = Decimal("0")

DISCOUNT_WINDOW_DAYS = 30
DISPOSAL_TIMING_DAYS = 30
# Value of deferring a gain by one tax year, as a share of the gain.
DEFERRAL_VALUE_RATE = Decimal("0.1")

ALLOWED_TIERS: dict[RiskTolerance, set[ComplianceTier]] = {
    RiskTolerance.CONSERVATIVE: {ComplianceTier.SAFE, ComplianceTier.MODERATE},
    RiskTolerance.MODERATE: {ComplianceTier.SAFE, ComplianceTier.MODERATE},
    RiskTolerance.AGGRESSIVE: {ComplianceTier.SAFE, ComplianceTier.MODERATE, ComplianceTier.AGGRESSIVE},
}


@dataclass
class OptimizationResult:
    strategies: list[TaxStrategy] = field(default_factory=list)
    # Analyses skipped for lack of input, one message each.
    warnings: list[str] = field(default_factory=list)


class TaxOptimizationEngine:
    """Generates ranked, risk-filtered tax strategies."""

    def __init__(self, marginal_rate: Decimal = Decimal("0.30")):
        self.marginal_rate = marginal_rate

    def analyze(
        self,
        taxable_transactions: Iterable[TaxableTransaction],
        jurisdiction: TaxJurisdiction,
        risk_tolerance: RiskTolerance = RiskTolerance.MODERATE,
        holdings: Iterable[Lot] = (),
        current_prices: Mapping[str, Decimal] | None = None,
        as_of: datetime | None = None,
        period: TaxPeriod | None = None,
        planned_disposals: Mapping[str, Decimal] | None = None,
    ) -> OptimizationResult:
        """Return strategies allowed by ``risk_tolerance``, most important first.

        ``holdings`` are open lots at ``as_of``; ``current_prices`` maps asset
        to unit price in the jurisdiction currency. Strategies that need
        prices are skipped (with a warning) when none are given.
        """
        warnings: list[str] = []
        taxables = list(taxable_transactions)
        lots = [lot.model_copy() for lot in holdings if lot.is_open]
        prices = {asset.upper(): Decimal(price) for asset, price in (current_prices or {}).items()}
        as_of = as_of or self._default_as_of(taxables, period)

        realized = sum(
            (t.net_gain for t in taxables if t.event_type == TaxEventType.DISPOSAL),
            ZERO,
        )

        strategies: list[TaxStrategy] = []
        if lots and not prices:
            warnings.append(
                "Current prices required for loss harvesting, discount timing and lot selection. "
                "Use --prices to provide."
            )
        if lots and prices and as_of is not None:
            strategies.extend(self._analyze_loss_harvesting(lots, prices, realized, jurisdiction))
            strategies.extend(self._analyze_discount_timing(lots, prices, as_of, jurisdiction))
            if planned_disposals:
                strategies.extend(
                    self._analyze_lot_selection(lots, prices, as_of, planned_disposals, jurisdiction, warnings)
                )
        strategies.extend(self._analyze_personal_use(taxables, jurisdiction))
        if period is not None:
            strategies.extend(self._analyze_disposal_timing(taxables, period, jurisdiction))

        return OptimizationResult(strategies=self.filter_by_risk(strategies, risk_tolerance), warnings=warnings)

    def generate_strategies(self, *args, **kwargs) -> list[TaxStrategy]:
        """Strategies only; see ``analyze``."""
        return self.analyze(*args, **kwargs).strategies

    @staticmethod
    def filter_by_risk(strategies: list[TaxStrategy], risk_tolerance: RiskTolerance) -> list[TaxStrategy]:
        allowed = ALLOWED_TIERS[risk_tolerance]
        kept: list[TaxStrategy] = []
        for strategy in strategies:
            if strategy.compliance not in allowed:
                continue
            if risk_tolerance == RiskTolerance.CONSERVATIVE and strategy.compliance == ComplianceTier.MODERATE:
                strategy = strategy.model_copy(update={"priority": strategy.priority + 1})
            kept.append(strategy)
        return sorted(kept, key=lambda s: (s.priority, -s.potential_savings))

    @staticmethod
    def _default_as_of(taxables: list[TaxableTransaction], period: TaxPeriod | None) -> datetime | None:
        if period is not None:
            return period.end - timedelta(microseconds=1)
        stamps = [t.timestamp for t in taxables if t.timestamp is not None]
        return max(stamps) if stamps else None

    def _savings(self, amount: Decimal) -> Decimal:
        return max(amount, ZERO) * self.marginal_rate

    # ------------------------------------------------------------------
    # Loss harvesting
    # ------------------------------------------------------------------

    def _analyze_loss_harvesting(
        self,
        lots: list[Lot],
        prices: dict[str, Decimal],
        realized: Decimal,
        jurisdiction: TaxJurisdiction,
    ) -> list[TaxStrategy]:
        losses: dict[str, tuple[Decimal, Decimal]] = {}
        for lot in lots:
            price = prices.get(lot.asset)
            if price is None:
                continue
            unrealized = (price - lot.cost_basis_per_unit) * lot.remaining_quantity
            if unrealized >= 0:
                continue
            quantity, loss = losses.get(lot.asset, (ZERO, ZERO))
            losses[lot.asset] = (quantity + lot.remaining_quantity, loss - unrealized)

        if not losses:
            return []

        currency = jurisdiction.currency
        ranked = sorted(losses.items(), key=lambda item: item[1][1], reverse=True)
        offsettable = max(realized, ZERO)
        recommendations: list[TaxStrategy] = []
        for asset, (quantity, loss) in ranked:
            used = min(loss, offsettable)
            offsettable -= used
            recommendations.append(TaxStrategy(
                type=StrategyType.LOSS_HARVESTING,
                asset=asset,
                description=(
                    f"Realize the {loss:,.2f} {currency} unrealized loss on {quantity} {asset} "
                    f"to offset realized capital gains."
                ),
                potential_savings=self._savings(used),
                implementation=[
                    f"Sell {quantity} {asset} before the end of the tax year",
                    "Do not reacquire the same asset shortly afterwards",
                    "Unused losses carry forward to offset future gains",
                ],
                risks=["Market may recover after the sale", "Transaction costs reduce the benefit"],
                compliance=ComplianceTier.SAFE,
                priority=1,
            ))

        total_loss = sum((loss for _, loss in losses.values()), ZERO)
        recommendations.append(TaxStrategy(
            type=StrategyType.LOSS_HARVESTING,
            description=(
                f"Sell and immediately reacquire {len(losses)} loss-making asset(s) to crystallize "
                f"{total_loss:,.2f} {currency} of losses while keeping market exposure."
            ),
            potential_savings=self._savings(min(total_loss, max(realized, ZERO))),
            implementation=[
                "Sell each loss-making position",
                "Repurchase the same asset shortly afterwards",
            ],
            risks=[
                "Wash sale arrangements may be cancelled under general anti-avoidance rules (Part IVA)",
                "Regulator scrutiny of sell-and-reacquire patterns",
            ],
            compliance=ComplianceTier.AGGRESSIVE,
            priority=4,
        ))
        return recommendations

    # ------------------------------------------------------------------
    # Discount timing
    # ------------------------------------------------------------------

    def _analyze_discount_timing(
        self,
        lots: list[Lot],
        prices: dict[str, Decimal],
        as_of: datetime,
        jurisdiction: TaxJurisdiction,
    ) -> list[TaxStrategy]:
        if jurisdiction.discount_rate <= 0:
            return []
        threshold = jurisdiction.discount_threshold_days
        recommendations: list[TaxStrategy] = []
        for lot in lots:
            price = prices.get(lot.asset)
            if price is None:
                continue
            gain = (price - lot.cost_basis_per_unit) * lot.remaining_quantity
            held = (as_of - lot.acquired_at).days
            days_left = threshold - held
            if gain <= 0 or not 0 < days_left <= DISCOUNT_WINDOW_DAYS:
                continue
            eligible_on = (lot.acquired_at + timedelta(days=threshold)).date()
            recommendations.append(TaxStrategy(
                type=StrategyType.DISCOUNT_TIMING,
                asset=lot.asset,
                description=(
                    f"{lot.remaining_quantity} {lot.asset} becomes discount-eligible in {days_left} days "
                    f"({eligible_on}); unrealized gain {gain:,.2f} {jurisdiction.currency}."
                ),
                potential_savings=self._savings(gain * jurisdiction.discount_rate),
                implementation=[
                    f"Hold lot {lot.id} until at least {eligible_on}",
                    "Set a reminder for the eligibility date",
                ],
                risks=["Price may fall before the eligibility date"],
                compliance=ComplianceTier.SAFE,
                priority=1,
            ))
        return recommendations

    # ------------------------------------------------------------------
    # Personal-use classification
    # ------------------------------------------------------------------

    def _analyze_personal_use(
        self,
        taxables: list[TaxableTransaction],
        jurisdiction: TaxJurisdiction,
    ) -> list[TaxStrategy]:
        candidates = [
            t for t in taxables
            if t.event_type == TaxEventType.DISPOSAL
            and t.capital_gain > 0
            and not t.transaction.personal_use
            and jurisdiction.is_below_personal_use_threshold(t.proceeds)
        ]
        if not candidates:
            return []
        taxable = sum((t.taxable_amount for t in candidates), ZERO)
        return [TaxStrategy(
            type=StrategyType.PERSONAL_USE_CLASSIFICATION,
            description=(
                f"{len(candidates)} small disposal(s) under {jurisdiction.personal_use_threshold:,.0f} "
                f"{jurisdiction.currency} may qualify as personal use assets."
            ),
            potential_savings=self._savings(taxable),
            implementation=[
                "Confirm each asset was acquired and used to buy goods or services for personal use",
                "Keep records of the personal purchases",
                "Flag the transactions as personal use and regenerate the report",
            ],
            risks=[
                "Assets held as investments do not qualify",
                "Regulator scrutiny on classification",
            ],
            compliance=ComplianceTier.MODERATE,
            priority=3,
        )]

    # ------------------------------------------------------------------
    # Disposal timing
    # ------------------------------------------------------------------

    def _analyze_disposal_timing(
        self,
        taxables: list[TaxableTransaction],
        period: TaxPeriod,
        jurisdiction: TaxJurisdiction,
    ) -> list[TaxStrategy]:
        window_start = period.end - timedelta(days=DISPOSAL_TIMING_DAYS)
        late = [
            t for t in taxables
            if t.event_type == TaxEventType.DISPOSAL
            and t.capital_gain > 0
            and t.timestamp is not None
            and window_start <= t.timestamp < period.end
        ]
        if not late:
            return []
        gains = sum((t.capital_gain for t in late), ZERO)
        return [TaxStrategy(
            type=StrategyType.DISPOSAL_TIMING,
            description=(
                f"{len(late)} gain-making disposal(s) in the last {DISPOSAL_TIMING_DAYS} days of "
                f"{period.label}; similar disposals could be deferred to the next tax year."
            ),
            potential_savings=max(gains * DEFERRAL_VALUE_RATE, ZERO),
            implementation=[
                f"Consider delaying similar disposals until after {period.last_day}",
                "Weigh the deferral against price risk",
            ],
            risks=["Price may fall while waiting", "Only defers tax, does not remove it"],
            compliance=ComplianceTier.SAFE,
            priority=2,
        )]

    # ------------------------------------------------------------------
    # Lot selection
    # ------------------------------------------------------------------

    def _analyze_lot_selection(
        self,
        lots: list[Lot],
        prices: dict[str, Decimal],
        as_of: datetime,
        planned_disposals: Mapping[str, Decimal],
        jurisdiction: TaxJurisdiction,
        warnings: list[str],
    ) -> list[TaxStrategy]:
        if not jurisdiction.supports(CostBasisMethod.SPECIFIC_IDENTIFICATION):
            return []

        recommendations: list[TaxStrategy] = []
        for asset, quantity in planned_disposals.items():
            asset = asset.upper()
            price = prices.get(asset)
            if price is None:
                warnings.append(f"No current price for {asset}; lot selection skipped")
                continue
            held = sorted((lot for lot in lots if lot.asset == asset), key=lambda lot: lot.acquired_at)
            if not held:
                continue
            quantity = Decimal(quantity)
            fifo = self._planned_taxable(held, quantity, price, as_of, jurisdiction)
            highest_cost = sorted(held, key=lambda lot: lot.cost_basis_per_unit, reverse=True)
            selected = self._planned_taxable(highest_cost, quantity, price, as_of, jurisdiction)
            difference = fifo - selected
            if difference <= 0:
                continue
            recommendations.append(TaxStrategy(
                type=StrategyType.LOT_SELECTION,
                asset=asset,
                description=(
                    f"Disposing of {quantity} {asset} from the highest-cost lots instead of FIFO "
                    f"lowers the taxable gain by {difference:,.2f} {jurisdiction.currency}."
                ),
                potential_savings=self._savings(difference),
                implementation=[
                    "Identify the specific lots being sold at the time of disposal",
                    "Keep records linking each disposal to its lots",
                ],
                risks=["Lot identification must be documented when the disposal happens"],
                compliance=ComplianceTier.MODERATE,
                priority=2,
            ))
        return recommendations

    @staticmethod
    def _planned_taxable(
        ordered: list[Lot],
        quantity: Decimal,
        price: Decimal,
        as_of: datetime,
        jurisdiction: TaxJurisdiction,
    ) -> Decimal:
        draws, _ = draw_from(ordered, quantity)
        taxable = ZERO
        for draw in draws:
            gain = draw.quantity * price - draw.cost_basis
            if gain > 0 and jurisdiction.qualifies_for_discount((as_of - draw.acquired_at).days):
                gain -= gain * jurisdiction.discount_rate
            taxable += gain
        return taxable
