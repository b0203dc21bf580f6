"""Resolve a transaction into incoming and outgoing asset legs with fiat values.

Leg amounts are taken as net of any embedded fee; the fee only adjusts value
(added to acquisition cost, subtracted from disposal proceeds).
"""

from dataclasses import dataclass, field
from decimal import Decimal

from taxledger.models.enums import TradeSide, TransferDirection
from taxledger.models.transaction import (
    Airdrop,
    AssetAmount,
    BaseTransaction,
    FeePayment,
    Interest,
    LiquidityAdd,
    LiquidityRemove,
    SpotTrade,
    StakingReward,
    Swap,
    Transfer,
    primary_asset,
)

ZERO = Decimal("0")


@dataclass
class Leg:
    asset: str
    quantity: Decimal
    value: Decimal | None  # fiat value of the whole leg, None if unknown

    @property
    def unit_value(self) -> Decimal | None:
        if self.value is None or self.quantity == 0:
            return None
        return self.value / self.quantity


@dataclass
class AssetFlows:
    """What a transaction moves into and out of the holder's wallets."""

    incoming: list[Leg] = field(default_factory=list)
    outgoing: list[Leg] = field(default_factory=list)
    fee: AssetAmount | None = None
    fee_value: Decimal | None = None

    def tracked_incoming(self, currency: str) -> list[Leg]:
        return [leg for leg in self.incoming if leg.asset != currency and leg.quantity > 0]

    def tracked_outgoing(self, currency: str) -> list[Leg]:
        return [leg for leg in self.outgoing if leg.asset != currency and leg.quantity > 0]

    @staticmethod
    def total(legs: list[Leg]) -> Decimal | None:
        """Sum of leg values, None if any leg is unpriced."""
        if any(leg.value is None for leg in legs):
            return None
        return sum((leg.value for leg in legs), ZERO)

    @property
    def incoming_value(self) -> Decimal | None:
        return self.total(self.incoming)

    @property
    def outgoing_value(self) -> Decimal | None:
        return self.total(self.outgoing)


def value_of(amount: AssetAmount, transaction: BaseTransaction, currency: str) -> Decimal | None:
    """Fiat value of ``amount`` from its annotation, the currency itself, or the unit price."""
    if amount.fiat_value is not None:
        return abs(amount.fiat_value)
    if amount.asset == currency:
        return amount.quantity
    if transaction.price is not None and amount.asset == primary_asset(transaction):
        return amount.quantity * transaction.price
    return None


def _leg(amount: AssetAmount, transaction: BaseTransaction, currency: str) -> Leg:
    return Leg(asset=amount.asset, quantity=amount.quantity, value=value_of(amount, transaction, currency))


def _balance(incoming: list[Leg], outgoing: list[Leg]) -> None:
    """An exchange is at arm's length: an unpriced side takes the priced side's value.

    One-sided flows (income, transfers, fees) have nothing to balance against.
    """
    if not incoming or not outgoing:
        return
    in_value = AssetFlows.total(incoming)
    out_value = AssetFlows.total(outgoing)
    if in_value is None and out_value is not None and len(incoming) == 1:
        incoming[0].value = out_value
    elif out_value is None and in_value is not None and len(outgoing) == 1:
        outgoing[0].value = in_value


def resolve_flows(transaction: BaseTransaction, currency: str) -> AssetFlows:
    currency = currency.upper()
    incoming: list[Leg] = []
    outgoing: list[Leg] = []

    match transaction:
        case SpotTrade(base=base, quote=quote, side=TradeSide.BUY):
            incoming.append(_leg(base, transaction, currency))
            outgoing.append(_leg(quote, transaction, currency))
        case SpotTrade(base=base, quote=quote, side=TradeSide.SELL):
            outgoing.append(_leg(base, transaction, currency))
            incoming.append(_leg(quote, transaction, currency))
        case Transfer(direction=TransferDirection.INTERNAL):
            pass
        case Transfer(asset=asset, direction=TransferDirection.IN):
            incoming.append(_leg(asset, transaction, currency))
        case Transfer(asset=asset, direction=TransferDirection.OUT):
            outgoing.append(_leg(asset, transaction, currency))
        case StakingReward(asset=asset) | Interest(asset=asset) | Airdrop(asset=asset):
            incoming.append(_leg(asset, transaction, currency))
        case Swap(sent=sent, received=received):
            outgoing.append(_leg(sent, transaction, currency))
            incoming.append(_leg(received, transaction, currency))
        case LiquidityAdd(deposited=deposited, pool_token=pool_token):
            outgoing.extend(_leg(a, transaction, currency) for a in deposited)
            if pool_token is not None:
                incoming.append(_leg(pool_token, transaction, currency))
        case LiquidityRemove(pool_token=pool_token, withdrawn=withdrawn):
            if pool_token is not None:
                outgoing.append(_leg(pool_token, transaction, currency))
            incoming.extend(_leg(a, transaction, currency) for a in withdrawn)
        case FeePayment(asset=asset):
            outgoing.append(_leg(asset, transaction, currency))
        case _:
            # Staking moves and unknown records carry no taxable flow.
            pass

    _balance(incoming, outgoing)
    flows = AssetFlows(incoming=incoming, outgoing=outgoing, fee=transaction.fee)
    if transaction.fee is not None:
        flows.fee_value = fee_value(transaction.fee, transaction, currency, incoming + outgoing)
    return flows


def fee_value(fee: AssetAmount, transaction: BaseTransaction, currency: str, legs: list[Leg]) -> Decimal | None:
    value = value_of(fee, transaction, currency)
    if value is not None:
        return value
    for leg in legs:
        unit = leg.unit_value
        if leg.asset == fee.asset and unit is not None:
            return fee.quantity * unit
    return None


def disposal_proceeds(flows: AssetFlows) -> Decimal | None:
    """Market value received for the outgoing legs, less the fee.

    The value of what comes in is preferred; a one-sided disposal (outbound
    transfer) falls back to the value of what went out.
    """
    gross = flows.incoming_value if flows.incoming else None
    if gross is None:
        gross = flows.outgoing_value
    if gross is None:
        return None
    return gross - (flows.fee_value or ZERO)
