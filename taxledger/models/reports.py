"""Report output models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from taxledger.models.enums import (
    ComplianceTier,
    CostBasisMethod,
    IssueSeverity,
    ReportState,
    StrategyType,
    TaxEventType,
)
from taxledger.models.jurisdiction import TaxJurisdiction, TaxPeriod
from taxledger.models.lot import Lot
from taxledger.models.tax import TaxableTransaction
from taxledger.models.validation import ValidationIssue

REPORT_VERSION = "1.0.0"


class AssetSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset: str
    disposals: int = 0
    acquisitions: int = 0
    net_gain: Decimal = Decimal("0")
    net_loss: Decimal = Decimal("0")
    income: Decimal = Decimal("0")


class SourceSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    transactions: int = 0
    total_value: Decimal = Decimal("0")
    net_gain: Decimal = Decimal("0")


class MonthSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str  # YYYY-MM
    transactions: int = 0
    gains: Decimal = Decimal("0")
    losses: Decimal = Decimal("0")
    income: Decimal = Decimal("0")


class TaxSummary(BaseModel):
    """Period totals, rounded to the reporting currency's precision."""

    model_config = ConfigDict(frozen=True)

    total_disposals: int = 0
    total_acquisitions: int = 0
    total_income_events: int = 0
    total_capital_gains: Decimal = Decimal("0")
    total_capital_losses: Decimal = Decimal("0")
    net_capital_gain: Decimal = Decimal("0")
    cgt_discount: Decimal = Decimal("0")
    taxable_capital_gain: Decimal = Decimal("0")
    ordinary_income: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    net_taxable_amount: Decimal = Decimal("0")
    by_asset: dict[str, AssetSummary] = Field(default_factory=dict)
    by_source: dict[str, SourceSummary] = Field(default_factory=dict)
    by_month: dict[str, MonthSummary] = Field(default_factory=dict)


class TaxStrategy(BaseModel):
    """A suggested action. Advisory only; never alters reported figures."""

    model_config = ConfigDict(frozen=True)

    type: StrategyType
    description: str
    potential_savings: Decimal = Field(ge=0)
    implementation: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    compliance: ComplianceTier
    priority: int = Field(ge=1)
    asset: str | None = None


class ReportProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    processed: int
    total: int
    state: ReportState
    chunk: int = 0

    @property
    def fraction(self) -> float:
        return 1.0 if self.total == 0 else self.processed / self.total


class ReportMetadata(BaseModel):
    total_transactions: int = 0
    input_transactions: int = 0
    prior_history_transactions: int = 0
    skipped_transactions: int = 0
    processed_sources: list[str] = Field(default_factory=list)
    report_version: str = REPORT_VERSION
    generation_time_ms: float = 0.0
    chunk_size: int = 0
    chunks_processed: int = 0
    cost_basis_method: CostBasisMethod = CostBasisMethod.FIFO
    complete: bool = True


class TaxReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    jurisdiction: TaxJurisdiction
    period: TaxPeriod
    generated_at: datetime
    transactions: list[TaxableTransaction] = Field(default_factory=list)
    summary: TaxSummary
    strategies: list[TaxStrategy] | None = None
    metadata: ReportMetadata
    issues: list[ValidationIssue] = Field(default_factory=list)
    holdings: list[Lot] = Field(default_factory=list)
    state: ReportState = ReportState.COMPLETE

    def _of_type(self, event_type: TaxEventType) -> list[TaxableTransaction]:
        return [t for t in self.transactions if t.event_type == event_type]

    @property
    def disposals(self) -> list[TaxableTransaction]:
        return self._of_type(TaxEventType.DISPOSAL)

    @property
    def acquisitions(self) -> list[TaxableTransaction]:
        return self._of_type(TaxEventType.ACQUISITION)

    @property
    def income_events(self) -> list[TaxableTransaction]:
        return self._of_type(TaxEventType.INCOME)

    @property
    def deductions(self) -> list[TaxableTransaction]:
        return self._of_type(TaxEventType.DEDUCTIBLE)

    def transactions_for_asset(self, asset: str) -> list[TaxableTransaction]:
        asset = asset.upper()
        return [t for t in self.transactions if t.asset == asset]

    def transactions_for_source(self, source: str) -> list[TaxableTransaction]:
        return [t for t in self.transactions if t.source == source]

    def find(self, transaction_id: str) -> TaxableTransaction | None:
        for taxable in self.transactions:
            if taxable.id == transaction_id:
                return taxable
        return None

    @property
    def total_potential_savings(self) -> Decimal:
        return sum((s.potential_savings for s in self.strategies or []), Decimal("0"))

    @property
    def has_errors(self) -> bool:
        return any(i.severity == IssueSeverity.ERROR for i in self.issues)

    def statistics(self) -> dict[str, int | Decimal]:
        """Headline counts for display."""
        return {
            "transactions": len(self.transactions),
            "disposals": len(self.disposals),
            "acquisitions": len(self.acquisitions),
            "income_events": len(self.income_events),
            "deductions": len(self.deductions),
            "assets": len(self.summary.by_asset),
            "sources": len(self.metadata.processed_sources),
            "open_lots": len(self.holdings),
            "strategies": len(self.strategies or []),
            "potential_savings": self.total_potential_savings,
        }
