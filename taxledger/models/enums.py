"""Enumerations for taxledger."""

from enum import StrEnum


class TransactionKind(StrEnum):
    SPOT_TRADE = "SPOT_TRADE"
    TRANSFER = "TRANSFER"
    FEE = "FEE"
    STAKING_DEPOSIT = "STAKING_DEPOSIT"
    STAKING_WITHDRAWAL = "STAKING_WITHDRAWAL"
    STAKING_REWARD = "STAKING_REWARD"
    INTEREST = "INTEREST"
    AIRDROP = "AIRDROP"
    SWAP = "SWAP"
    LIQUIDITY_ADD = "LIQUIDITY_ADD"
    LIQUIDITY_REMOVE = "LIQUIDITY_REMOVE"
    UNKNOWN = "UNKNOWN"


class TradeSide(StrEnum):
    BUY = "BUY"
    SELL = "SELL"


class TransferDirection(StrEnum):
    IN = "IN"
    OUT = "OUT"
    INTERNAL = "INTERNAL"


class IncomeSource(StrEnum):
    """Reward origin for inbound third-party transfers."""

    MINING = "MINING"
    REFERRAL = "REFERRAL"
    CASHBACK = "CASHBACK"
    BONUS = "BONUS"


class TaxEventType(StrEnum):
    ACQUISITION = "ACQUISITION"
    DISPOSAL = "DISPOSAL"
    INCOME = "INCOME"
    DEDUCTIBLE = "DEDUCTIBLE"
    NON_TAXABLE = "NON_TAXABLE"


class RuleCategory(StrEnum):
    CAPITAL_GAINS = "CAPITAL_GAINS"
    INCOME = "INCOME"
    DEDUCTIONS = "DEDUCTIONS"
    EXEMPTIONS = "EXEMPTIONS"
    REPORTING = "REPORTING"


class CostBasisMethod(StrEnum):
    FIFO = "FIFO"
    SPECIFIC_IDENTIFICATION = "SPECIFIC_IDENTIFICATION"


class StrategyType(StrEnum):
    LOSS_HARVESTING = "LOSS_HARVESTING"
    DISCOUNT_TIMING = "DISCOUNT_TIMING"
    PERSONAL_USE_CLASSIFICATION = "PERSONAL_USE_CLASSIFICATION"
    DISPOSAL_TIMING = "DISPOSAL_TIMING"
    LOT_SELECTION = "LOT_SELECTION"


class ComplianceTier(StrEnum):
    SAFE = "SAFE"
    MODERATE = "MODERATE"
    AGGRESSIVE = "AGGRESSIVE"


class RiskTolerance(StrEnum):
    CONSERVATIVE = "CONSERVATIVE"
    MODERATE = "MODERATE"
    AGGRESSIVE = "AGGRESSIVE"


class IssueSeverity(StrEnum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ReportState(StrEnum):
    INITIALIZED = "INITIALIZED"
    FILTERING = "FILTERING"
    CLASSIFYING = "CLASSIFYING"
    CONSUMING_LEDGER = "CONSUMING_LEDGER"
    AGGREGATING = "AGGREGATING"
    OPTIMIZING = "OPTIMIZING"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"
