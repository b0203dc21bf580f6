"""Capital gains calculator.

Turns a disposal and the lots it consumed into gain/loss figures, applying
the long-holding discount per lot. Amounts are exact; nothing is rounded.
"""

from decimal import Decimal

from taxledger.models.jurisdiction import TaxJurisdiction
from taxledger.models.lot import DisposalConsumption
from taxledger.models.tax import CapitalGainsResult, LotGain
from taxledger.models.transaction import BaseTransaction
from taxledger.normalization.flows import disposal_proceeds, resolve_flows

ZERO = Decimal("0")


def split_pro_rata(total: Decimal, weights: list[Decimal]) -> list[Decimal]:
    """Split ``total`` by ``weights`` so that the parts sum to ``total`` exactly.

    The last part absorbs any division remainder. Zero total weight splits
    evenly.
    """
    if not weights:
        return []
    weight_sum = sum(weights, ZERO)
    if weight_sum == 0:
        weights = [Decimal("1")] * len(weights)
        weight_sum = Decimal(len(weights))
    parts = [total * w / weight_sum for w in weights[:-1]]
    parts.append(total - sum(parts, ZERO))
    return parts


class CapitalGainsCalculator:
    """Computes realized gain or loss for one disposal."""

    def calculate(
        self,
        disposal: BaseTransaction,
        consumption: DisposalConsumption,
        jurisdiction: TaxJurisdiction,
        proceeds: Decimal | None = None,
        exempt: bool = False,
    ) -> CapitalGainsResult:
        """Compute the result for ``disposal`` given the lots it consumed.

        ``proceeds`` defaults to quantity x unit price less the disposal fee.
        Multi-leg disposals pass each leg's share explicitly.

        Gains on lots held at least the jurisdiction's discount threshold are
        reduced by its discount rate; capital losses are never discounted. A
        shortfall portion has no cost base and no holding period.
        """
        if proceeds is None:
            proceeds = self.default_proceeds(disposal, consumption, jurisdiction)

        portions = [(d.lot_id, d.quantity, d.cost_basis, d.acquired_at) for d in consumption.draws]
        if consumption.shortfall > 0:
            portions.append((None, consumption.shortfall, ZERO, disposal.timestamp))

        shares = split_pro_rata(proceeds, [quantity for _, quantity, _, _ in portions])
        lots: list[LotGain] = []
        for (lot_id, quantity, cost_basis, acquired_at), share in zip(portions, shares):
            holding_days = (disposal.timestamp - acquired_at).days
            gain = share - cost_basis
            discounted = (
                not exempt
                and lot_id is not None
                and gain > 0
                and jurisdiction.qualifies_for_discount(holding_days)
            )
            lots.append(
                LotGain(
                    lot_id=lot_id,
                    quantity=quantity,
                    proceeds=share,
                    cost_basis=cost_basis,
                    acquired_at=acquired_at,
                    holding_days=holding_days,
                    discount_applied=discounted,
                    discount_amount=gain * jurisdiction.discount_rate if discounted else ZERO,
                )
            )

        cost_basis = consumption.total_cost_basis
        if exempt:
            return CapitalGainsResult(
                asset=consumption.asset,
                quantity=consumption.requested_quantity,
                proceeds=proceeds,
                cost_basis=cost_basis,
                lots=lots,
                shortfall=consumption.shortfall,
                exempt=True,
            )

        net = proceeds - cost_basis
        return CapitalGainsResult(
            asset=consumption.asset,
            quantity=consumption.requested_quantity,
            proceeds=proceeds,
            cost_basis=cost_basis,
            capital_gain=net if net > 0 else ZERO,
            capital_loss=-net if net < 0 else ZERO,
            discount_amount=sum((lot.discount_amount for lot in lots), ZERO),
            taxable_amount=sum((lot.taxable_amount for lot in lots), ZERO),
            lots=lots,
            shortfall=consumption.shortfall,
        )

    @staticmethod
    def default_proceeds(
        disposal: BaseTransaction,
        consumption: DisposalConsumption,
        jurisdiction: TaxJurisdiction,
    ) -> Decimal:
        flows = resolve_flows(disposal, jurisdiction.currency)
        fee = flows.fee_value or ZERO
        if disposal.price is not None:
            return consumption.requested_quantity * disposal.price - fee
        return disposal_proceeds(flows) or ZERO
