"""Normalized transaction records.

Transactions arrive from an upstream normalizer and are never mutated here.
They form a closed set of variants keyed by ``kind``; every consumer resolves
a variant with ``match`` rather than probing for attributes.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taxledger.models.enums import IncomeSource, TradeSide, TransferDirection


class AssetAmount(BaseModel):
    """An exact quantity of one asset, optionally annotated with its fiat value."""

    model_config = ConfigDict(frozen=True)

    asset: str
    amount: Decimal
    fiat_value: Decimal | None = None

    @field_validator("asset")
    @classmethod
    def _upper_symbol(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def quantity(self) -> Decimal:
        return abs(self.amount)


class BaseTransaction(BaseModel):
    """Fields shared by every transaction variant.

    ``id`` and ``timestamp`` are optional on construction so that malformed
    records can still be inspected; ``validate_transaction`` reports them.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    timestamp: datetime | None = None
    source: str = "UNKNOWN"
    fee: AssetAmount | None = None
    price: Decimal | None = None
    personal_use: bool = False
    description: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class SpotTrade(BaseTransaction):
    kind: Literal["SPOT_TRADE"] = "SPOT_TRADE"
    base: AssetAmount
    quote: AssetAmount
    side: TradeSide


class Transfer(BaseTransaction):
    kind: Literal["TRANSFER"] = "TRANSFER"
    asset: AssetAmount
    direction: TransferDirection
    # False when the counterparty is a third party (purchase, gift, payment).
    own_wallet: bool = True
    income_source: IncomeSource | None = None
    counterparty: str | None = None


class FeePayment(BaseTransaction):
    kind: Literal["FEE"] = "FEE"
    asset: AssetAmount


class StakingDeposit(BaseTransaction):
    kind: Literal["STAKING_DEPOSIT"] = "STAKING_DEPOSIT"
    asset: AssetAmount


class StakingWithdrawal(BaseTransaction):
    kind: Literal["STAKING_WITHDRAWAL"] = "STAKING_WITHDRAWAL"
    asset: AssetAmount


class StakingReward(BaseTransaction):
    kind: Literal["STAKING_REWARD"] = "STAKING_REWARD"
    asset: AssetAmount


class Interest(BaseTransaction):
    kind: Literal["INTEREST"] = "INTEREST"
    asset: AssetAmount


class Airdrop(BaseTransaction):
    kind: Literal["AIRDROP"] = "AIRDROP"
    asset: AssetAmount


class Swap(BaseTransaction):
    kind: Literal["SWAP"] = "SWAP"
    sent: AssetAmount
    received: AssetAmount
    protocol: str | None = None


class LiquidityAdd(BaseTransaction):
    kind: Literal["LIQUIDITY_ADD"] = "LIQUIDITY_ADD"
    deposited: list[AssetAmount]
    pool_token: AssetAmount | None = None
    pool: str | None = None


class LiquidityRemove(BaseTransaction):
    kind: Literal["LIQUIDITY_REMOVE"] = "LIQUIDITY_REMOVE"
    pool_token: AssetAmount | None = None
    withdrawn: list[AssetAmount]
    pool: str | None = None


class UnknownTransaction(BaseTransaction):
    kind: Literal["UNKNOWN"] = "UNKNOWN"
    assets: list[AssetAmount] = Field(default_factory=list)
    raw_type: str | None = None


Transaction = Annotated[
    SpotTrade
    | Transfer
    | FeePayment
    | StakingDeposit
    | StakingWithdrawal
    | StakingReward
    | Interest
    | Airdrop
    | Swap
    | LiquidityAdd
    | LiquidityRemove
    | UnknownTransaction,
    Field(discriminator="kind"),
]


def asset_amounts(transaction: BaseTransaction) -> list[AssetAmount]:
    """All asset-quantity pairs carried by a transaction, fee excluded."""
    match transaction:
        case SpotTrade(base=base, quote=quote):
            return [base, quote]
        case Transfer(asset=asset) | FeePayment(asset=asset):
            return [asset]
        case StakingDeposit(asset=asset) | StakingWithdrawal(asset=asset):
            return [asset]
        case StakingReward(asset=asset) | Interest(asset=asset) | Airdrop(asset=asset):
            return [asset]
        case Swap(sent=sent, received=received):
            return [sent, received]
        case LiquidityAdd(deposited=deposited, pool_token=pool_token):
            return [*deposited, *([pool_token] if pool_token else [])]
        case LiquidityRemove(pool_token=pool_token, withdrawn=withdrawn):
            return [*([pool_token] if pool_token else []), *withdrawn]
        case UnknownTransaction(assets=assets):
            return list(assets)
        case _:
            raise TypeError(f"Unsupported transaction type: {type(transaction).__name__}")


def primary_asset(transaction: BaseTransaction) -> str:
    """The asset a transaction is reported under in per-asset breakdowns."""
    match transaction:
        case SpotTrade(base=base):
            return base.asset
        case Swap(sent=sent):
            return sent.asset
        case LiquidityAdd(deposited=[first, *_]):
            return first.asset
        case LiquidityRemove(pool_token=AssetAmount() as token):
            return token.asset
        case _:
            amounts = asset_amounts(transaction)
            return amounts[0].asset if amounts else "UNKNOWN"
