"""Data models for taxledger."""

from taxledger.models.enums import (
    ComplianceTier,
    CostBasisMethod,
    IncomeSource,
    IssueSeverity,
    ReportState,
    RiskTolerance,
    RuleCategory,
    StrategyType,
    TaxEventType,
    TradeSide,
    TransactionKind,
    TransferDirection,
)
from taxledger.models.jurisdiction import (
    TaxJurisdiction,
    TaxPeriod,
    TaxRule,
    TaxYearBoundary,
    australia,
    load_preset,
    validate_jurisdiction,
)
from taxledger.models.lot import DisposalConsumption, Lot, LotDraw
from taxledger.models.reports import (
    AssetSummary,
    MonthSummary,
    ReportMetadata,
    ReportProgress,
    SourceSummary,
    TaxReport,
    TaxStrategy,
    TaxSummary,
)
from taxledger.models.tax import CapitalGainsResult, LotGain, TaxableTransaction, TaxTreatment
from taxledger.models.transaction import (
    Airdrop,
    AssetAmount,
    BaseTransaction,
    FeePayment,
    Interest,
    LiquidityAdd,
    LiquidityRemove,
    SpotTrade,
    StakingDeposit,
    StakingReward,
    StakingWithdrawal,
    Swap,
    Transaction,
    Transfer,
    UnknownTransaction,
    asset_amounts,
    primary_asset,
)
from taxledger.models.validation import ValidationIssue, ValidationResult

__all__ = [
    "Airdrop",
    "AssetAmount",
    "AssetSummary",
    "BaseTransaction",
    "CapitalGainsResult",
    "ComplianceTier",
    "CostBasisMethod",
    "DisposalConsumption",
    "FeePayment",
    "IncomeSource",
    "Interest",
    "IssueSeverity",
    "LiquidityAdd",
    "LiquidityRemove",
    "Lot",
    "LotDraw",
    "LotGain",
    "MonthSummary",
    "ReportMetadata",
    "ReportProgress",
    "ReportState",
    "RiskTolerance",
    "RuleCategory",
    "SourceSummary",
    "SpotTrade",
    "StakingDeposit",
    "StakingReward",
    "StakingWithdrawal",
    "StrategyType",
    "Swap",
    "TaxEventType",
    "TaxJurisdiction",
    "TaxPeriod",
    "TaxReport",
    "TaxRule",
    "TaxStrategy",
    "TaxSummary",
    "TaxTreatment",
    "TaxYearBoundary",
    "TaxableTransaction",
    "TradeSide",
    "Transaction",
    "TransactionKind",
    "Transfer",
    "TransferDirection",
    "UnknownTransaction",
    "ValidationIssue",
    "ValidationResult",
    "asset_amounts",
    "australia",
    "load_preset",
    "primary_asset",
    "validate_jurisdiction",
]
