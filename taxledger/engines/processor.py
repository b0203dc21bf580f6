"""Apply one classified transaction to the lot ledger and compute its figures."""

import logging
from collections.abc import Mapping
from decimal import Decimal

from taxledger.engines.capital_gains import CapitalGainsCalculator, split_pro_rata
from taxledger.engines.ledger import LotLedger
from taxledger.models.enums import IssueSeverity, TaxEventType
from taxledger.models.jurisdiction import TaxJurisdiction
from taxledger.models.lot import DisposalConsumption, LotDraw
from taxledger.models.tax import LotGain, TaxableTransaction, TaxTreatment
from taxledger.models.transaction import BaseTransaction
from taxledger.models.validation import ValidationIssue
from taxledger.normalization.flows import AssetFlows, Leg, disposal_proceeds, resolve_flows

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class TransactionProcessor:
    """Moves a transaction through the ledger according to its treatment.

    Acquisitions and income open lots; disposals consume them and are priced
    by the capital gains calculator; standalone fees are deductible.

    Lots are consumed FIFO unless ``lot_selections`` names the lots for a
    transaction id (lot id to quantity).
    """

    def __init__(
        self,
        jurisdiction: TaxJurisdiction,
        ledger: LotLedger,
        calculator: CapitalGainsCalculator,
        lot_selections: Mapping[str, Mapping[str, Decimal]] | None = None,
    ):
        self.jurisdiction = jurisdiction
        self.ledger = ledger
        self.calculator = calculator
        self.currency = jurisdiction.currency
        self.lot_selections = lot_selections or {}

    def process(self, transaction: BaseTransaction, treatment: TaxTreatment) -> TaxableTransaction:
        flows = resolve_flows(transaction, self.currency)
        issues: list[ValidationIssue] = []
        if treatment.low_confidence:
            issues.append(self._issue(
                transaction, "LOW_CONFIDENCE", IssueSeverity.INFO,
                "Transaction could not be classified and was treated as non-taxable",
            ))

        match treatment.event_type:
            case TaxEventType.DISPOSAL:
                figures = self._dispose(transaction, treatment, flows, issues)
            case TaxEventType.ACQUISITION:
                figures = self._acquire(transaction, flows, issues)
            case TaxEventType.INCOME:
                figures = self._receive_income(transaction, flows, issues)
            case TaxEventType.DEDUCTIBLE:
                figures = self._deduct(transaction, flows, issues)
            case _:
                figures = {}

        return TaxableTransaction(transaction=transaction, treatment=treatment, issues=issues, **figures)

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    def _dispose(
        self,
        transaction: BaseTransaction,
        treatment: TaxTreatment,
        flows: AssetFlows,
        issues: list[ValidationIssue],
    ) -> dict:
        outgoing = flows.tracked_outgoing(self.currency)
        proceeds = disposal_proceeds(flows)
        if proceeds is None:
            issues.append(self._missing_price(transaction, "proceeds"))
            proceeds = ZERO
        if flows.fee is not None and flows.fee_value is None:
            issues.append(self._missing_price(transaction, "fee"))

        # Fee is shared across outgoing legs through their share of net proceeds.
        weights = [leg.value if leg.value is not None else leg.quantity for leg in outgoing]
        leg_proceeds = split_pro_rata(proceeds, weights)

        totals = dict(proceeds=ZERO, cost_basis=ZERO, discount_amount=ZERO, taxable_amount=ZERO, shortfall=ZERO)
        net = ZERO
        lots: list[LotGain] = []
        for leg, leg_share in zip(outgoing, leg_proceeds):
            consumption = self._consume(transaction, leg)
            if consumption.has_shortfall:
                issues.append(self._issue(
                    transaction, "LEDGER_SHORTFALL", IssueSeverity.WARNING,
                    f"Disposed {leg.quantity} {leg.asset} but only {consumption.drawn_quantity} was held; "
                    f"{consumption.shortfall} treated as zero cost basis",
                    field=leg.asset,
                ))
            result = self.calculator.calculate(
                transaction, consumption, self.jurisdiction,
                proceeds=leg_share, exempt=treatment.personal_use_exempt,
            )
            for key in totals:
                totals[key] += getattr(result, key)
            net += result.capital_gain - result.capital_loss
            lots.extend(result.lots)

        # A disposal reports a gain or a loss, never both: legs are netted.
        totals["capital_gain"] = max(net, ZERO)
        totals["capital_loss"] = max(-net, ZERO)

        # Assets received in exchange are acquired at market value.
        self._open_lots(transaction, flows.tracked_incoming(self.currency), None, issues)
        return {**totals, "lots": lots}

    def _acquire(self, transaction: BaseTransaction, flows: AssetFlows, issues: list[ValidationIssue]) -> dict:
        incoming = flows.tracked_incoming(self.currency)
        cost = flows.outgoing_value if flows.outgoing else flows.incoming_value
        if cost is None:
            issues.append(self._missing_price(transaction, "cost"))
            cost = ZERO
        if flows.fee is not None:
            if flows.fee_value is None:
                issues.append(self._missing_price(transaction, "fee"))
            cost += flows.fee_value or ZERO
        self._open_lots(transaction, incoming, cost, issues)
        return {"acquisition_cost": cost}

    def _receive_income(self, transaction: BaseTransaction, flows: AssetFlows, issues: list[ValidationIssue]) -> dict:
        incoming = flows.tracked_incoming(self.currency)
        income = ZERO
        for leg in flows.incoming:
            if leg.value is None:
                logger.warning("No price for %s income in %s; valued at zero", leg.asset, transaction.id)
                issues.append(self._missing_price(transaction, "income"))
            else:
                income += leg.value

        if self.jurisdiction.income_sets_cost_basis:
            self._open_lots(transaction, incoming, None, issues, missing_as_zero=True)
        else:
            self._open_lots(transaction, incoming, ZERO, issues)

        deductible = ZERO
        if flows.fee is not None:
            deductible = flows.fee_value or ZERO
        return {"income_amount": income, "deductible_amount": deductible, "acquisition_cost": income}

    def _deduct(self, transaction: BaseTransaction, flows: AssetFlows, issues: list[ValidationIssue]) -> dict:
        value = flows.outgoing_value
        if value is None:
            issues.append(self._missing_price(transaction, "fee"))
            value = ZERO

        lots: list[LotGain] = []
        for leg in flows.tracked_outgoing(self.currency):
            consumption = self._consume(transaction, leg)
            if consumption.has_shortfall:
                issues.append(self._issue(
                    transaction, "LEDGER_SHORTFALL", IssueSeverity.WARNING,
                    f"Fee of {leg.quantity} {leg.asset} exceeds holdings by {consumption.shortfall}",
                    field=leg.asset,
                ))
            lots.extend(self._consumed_without_gain(transaction, consumption.draws))
        return {"deductible_amount": value, "lots": lots}

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _consume(self, transaction: BaseTransaction, leg: Leg) -> DisposalConsumption:
        selection = self.lot_selections.get(transaction.id)
        if selection:
            return self.ledger.consume_specific(leg.asset, leg.quantity, selection, transaction.timestamp)
        return self.ledger.consume(leg.asset, leg.quantity, transaction.timestamp)

    def _open_lots(
        self,
        transaction: BaseTransaction,
        legs: list[Leg],
        total_cost: Decimal | None,
        issues: list[ValidationIssue],
        missing_as_zero: bool = False,
    ) -> None:
        """Open one lot per leg.

        With ``total_cost`` the cost is split across legs by value (by quantity
        when unpriced). Without it each leg costs its own market value.
        """
        if not legs:
            return
        if total_cost is not None:
            weights = [leg.value if leg.value is not None else leg.quantity for leg in legs]
            costs = split_pro_rata(total_cost, weights)
        else:
            costs = []
            for leg in legs:
                if leg.value is None and not missing_as_zero:
                    issues.append(self._missing_price(transaction, leg.asset))
                costs.append(leg.value or ZERO)

        for leg, cost in zip(legs, costs):
            self.ledger.acquire(
                leg.asset,
                leg.quantity,
                cost / leg.quantity,
                transaction.timestamp,
                transaction.id,
            )

    @staticmethod
    def _consumed_without_gain(transaction: BaseTransaction, draws: list[LotDraw]) -> list[LotGain]:
        return [
            LotGain(
                lot_id=draw.lot_id,
                quantity=draw.quantity,
                proceeds=ZERO,
                cost_basis=draw.cost_basis,
                acquired_at=draw.acquired_at,
                holding_days=(transaction.timestamp - draw.acquired_at).days,
            )
            for draw in draws
        ]

    @staticmethod
    def _issue(
        transaction: BaseTransaction,
        code: str,
        severity: IssueSeverity,
        message: str,
        field: str | None = None,
    ) -> ValidationIssue:
        return ValidationIssue(
            code=code,
            severity=severity,
            message=message,
            field=field,
            transaction_id=transaction.id,
        )

    def _missing_price(self, transaction: BaseTransaction, what: str) -> ValidationIssue:
        return self._issue(
            transaction, "MISSING_PRICE", IssueSeverity.WARNING,
            f"No {self.currency} value available for {what}; valued at zero",
            field="price",
        )
