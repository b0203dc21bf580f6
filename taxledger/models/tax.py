"""Tax treatment and per-transaction tax result models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from taxledger.models.enums import TaxEventType
from taxledger.models.transaction import Transaction, primary_asset
from taxledger.models.validation import ValidationIssue

ZERO = Decimal("0")


class TaxTreatment(BaseModel):
    """How one transaction is treated for tax purposes."""

    model_config = ConfigDict(frozen=True)

    event_type: TaxEventType
    classification: str
    reason: str
    personal_use_exempt: bool = False
    # CGT-eligible, subject to the per-lot holding test at calculation time.
    discount_eligible: bool = False
    applicable_rules: list[str] = Field(default_factory=list)
    low_confidence: bool = False
    matched_rule: str | None = None

    @property
    def is_taxable(self) -> bool:
        return self.event_type not in (TaxEventType.NON_TAXABLE, TaxEventType.ACQUISITION)


class LotGain(BaseModel):
    """Gain or loss attributable to one lot draw of a disposal."""

    model_config = ConfigDict(frozen=True)

    lot_id: str | None  # None for the zero-basis shortfall portion
    quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    acquired_at: datetime
    holding_days: int
    discount_applied: bool = False
    discount_amount: Decimal = ZERO

    @property
    def gain(self) -> Decimal:
        return self.proceeds - self.cost_basis

    @property
    def taxable_amount(self) -> Decimal:
        return self.gain - self.discount_amount


class CapitalGainsResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset: str
    quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    capital_gain: Decimal = ZERO
    capital_loss: Decimal = ZERO
    discount_amount: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    lots: list[LotGain] = Field(default_factory=list)
    shortfall: Decimal = ZERO
    exempt: bool = False

    @property
    def net_gain(self) -> Decimal:
        return self.capital_gain - self.capital_loss

    @property
    def discount_applied(self) -> bool:
        return self.discount_amount > 0


class TaxableTransaction(BaseModel):
    """A transaction together with its treatment and final numbers.

    Amounts are exact; rounding happens only when the summary is built.
    """

    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    treatment: TaxTreatment
    proceeds: Decimal = ZERO
    cost_basis: Decimal = ZERO
    capital_gain: Decimal = ZERO
    capital_loss: Decimal = ZERO
    discount_amount: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    income_amount: Decimal = ZERO
    deductible_amount: Decimal = ZERO
    acquisition_cost: Decimal = ZERO
    lots: list[LotGain] = Field(default_factory=list)
    shortfall: Decimal = ZERO
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def id(self) -> str | None:
        return self.transaction.id

    @property
    def timestamp(self) -> datetime | None:
        return self.transaction.timestamp

    @property
    def source(self) -> str:
        return self.transaction.source

    @property
    def asset(self) -> str:
        return primary_asset(self.transaction)

    @property
    def event_type(self) -> TaxEventType:
        return self.treatment.event_type

    @property
    def net_gain(self) -> Decimal:
        return self.capital_gain - self.capital_loss

    @property
    def discount_applied(self) -> bool:
        return self.discount_amount > 0
