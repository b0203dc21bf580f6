"""Tax jurisdiction configuration and tax period models."""

from calendar import monthrange
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from taxledger.models.enums import CostBasisMethod, RuleCategory, TaxEventType


class TaxRule(BaseModel):
    """A named rule a treatment can cite (e.g. the CGT discount)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: RuleCategory
    applies_to: list[TaxEventType] = Field(default_factory=list)
    effective_from: date | None = None


class TaxYearBoundary(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_month: int = Field(ge=1, le=12)
    start_day: int = Field(ge=1, le=31)
    end_month: int = Field(ge=1, le=12)
    end_day: int = Field(ge=1, le=31)

    @property
    def spans_calendar_years(self) -> bool:
        return (self.start_month, self.start_day) > (self.end_month, self.end_day)


class TaxPeriod(BaseModel):
    """One tax year: inclusive start instant, exclusive end instant (both UTC)."""

    model_config = ConfigDict(frozen=True)

    year: int
    start: datetime
    end: datetime
    label: str

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp < self.end

    @property
    def last_day(self) -> date:
        return (self.end - timedelta(days=1)).date()


def _clamped_date(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, monthrange(year, month)[1]))


class TaxJurisdiction(BaseModel):
    """Jurisdiction-specific constants, loaded once per report and never mutated."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    tax_year: TaxYearBoundary
    currency: str
    currency_precision: int = Field(default=2, ge=0, le=8)
    discount_rate: Decimal = Field(ge=0, le=1)
    discount_threshold_days: int = Field(ge=0)
    personal_use_threshold: Decimal = Field(ge=0)
    supported_methods: list[CostBasisMethod] = Field(default_factory=lambda: [CostBasisMethod.FIFO])
    rules: list[TaxRule] = Field(default_factory=list)
    # When True, income receipts create lots whose cost basis is their income value.
    income_sets_cost_basis: bool = True

    def supports(self, method: CostBasisMethod) -> bool:
        return method in self.supported_methods

    def qualifies_for_discount(self, holding_days: int) -> bool:
        return holding_days >= self.discount_threshold_days

    def is_below_personal_use_threshold(self, amount: Decimal) -> bool:
        return amount < self.personal_use_threshold

    def period_for(self, year: int) -> TaxPeriod:
        """Tax period labelled by the calendar year in which it ends.

        For a July-June year, ``period_for(2024)`` runs 2023-07-01 to 2024-06-30.
        A boundary on February 29 falls on February 28 in common years.
        """
        boundary = self.tax_year
        start_year = year - 1 if boundary.spans_calendar_years else year
        start = _clamped_date(start_year, boundary.start_month, boundary.start_day)
        last = _clamped_date(year, boundary.end_month, boundary.end_day)
        label = f"{start_year}-{year}" if start_year != year else str(year)
        return TaxPeriod(
            year=year,
            start=datetime.combine(start, time.min, tzinfo=UTC),
            end=datetime.combine(last + timedelta(days=1), time.min, tzinfo=UTC),
            label=label,
        )

    def tax_year_for(self, timestamp: datetime) -> int:
        """Year label of the period containing ``timestamp``."""
        year = timestamp.year
        period = self.period_for(year)
        if timestamp < period.start:
            return year - 1
        if timestamp >= period.end:
            return year + 1
        return year

    def rule_ids_for(self, event_type: TaxEventType) -> list[str]:
        return [rule.id for rule in self.rules if not rule.applies_to or event_type in rule.applies_to]


def validate_jurisdiction(jurisdiction: TaxJurisdiction) -> list[str]:
    """Cross-field checks pydantic field constraints cannot express.

    Returns a list of error messages; empty when the configuration is usable.
    """
    errors: list[str] = []
    if not jurisdiction.code.strip():
        errors.append("Jurisdiction code is required")
    if not jurisdiction.currency.strip():
        errors.append("Currency is required")
    if not Decimal("0") <= jurisdiction.discount_rate <= Decimal("1"):
        errors.append(f"Discount rate must be between 0 and 1, got {jurisdiction.discount_rate}")
    if jurisdiction.discount_threshold_days < 0:
        errors.append("Discount threshold days must be non-negative")
    if jurisdiction.personal_use_threshold < 0:
        errors.append("Personal use threshold must be non-negative")
    if not jurisdiction.supported_methods:
        errors.append("At least one cost basis method must be supported")

    boundary = jurisdiction.tax_year
    for label, month, day in (
        ("start", boundary.start_month, boundary.start_day),
        ("end", boundary.end_month, boundary.end_day),
    ):
        if not 1 <= month <= 12:
            errors.append(f"Tax year {label} month {month} is not a month")
            continue
        # February 29 is accepted and falls on the 28th in common years.
        max_day = 29 if month == 2 else monthrange(2023, month)[1]
        if not 1 <= day <= max_day:
            errors.append(f"Tax year {label} day {day} is invalid for month {month}")

    ids = [rule.id for rule in jurisdiction.rules]
    if len(ids) != len(set(ids)):
        errors.append("Rule ids must be unique")
    return errors


# ---------------------------------------------------------------------------
# Default preset
# ---------------------------------------------------------------------------

CGT_DISCOUNT_RULE = TaxRule(
    id="AU_CGT_DISCOUNT",
    name="CGT 50% discount for individuals",
    description="Gains on assets held at least 12 months are reduced by 50%.",
    category=RuleCategory.CAPITAL_GAINS,
    applies_to=[TaxEventType.DISPOSAL],
    effective_from=date(1999, 9, 21),
)

PERSONAL_USE_RULE = TaxRule(
    id="AU_PERSONAL_USE_EXEMPTION",
    name="Personal use asset exemption",
    description="Personal use assets acquired for less than $10,000 are exempt from CGT.",
    category=RuleCategory.EXEMPTIONS,
    applies_to=[TaxEventType.DISPOSAL],
    effective_from=date(1985, 9, 20),
)

ORDINARY_INCOME_RULE = TaxRule(
    id="AU_CRYPTO_ORDINARY_INCOME",
    name="Rewards as ordinary income",
    description="Staking rewards, airdrops and interest are income at market value when received.",
    category=RuleCategory.INCOME,
    applies_to=[TaxEventType.INCOME],
    effective_from=date(2021, 1, 1),
)

COST_BASE_RULE = TaxRule(
    id="AU_COST_BASE",
    name="Cost base includes incidental costs",
    description="Brokerage and exchange fees form part of the cost base or reduce capital proceeds.",
    category=RuleCategory.CAPITAL_GAINS,
    applies_to=[TaxEventType.ACQUISITION, TaxEventType.DISPOSAL],
)

DEDUCTION_RULE = TaxRule(
    id="AU_DEDUCTIBLE_EXPENSE",
    name="Deductible expenses",
    description="Standalone fees not attached to an acquisition or disposal.",
    category=RuleCategory.DEDUCTIONS,
    applies_to=[TaxEventType.DEDUCTIBLE],
)


def australia() -> TaxJurisdiction:
    """Australian jurisdiction: July-June year, 50% discount after 365 days."""
    return TaxJurisdiction(
        code="AU",
        name="Australia",
        tax_year=TaxYearBoundary(start_month=7, start_day=1, end_month=6, end_day=30),
        currency="AUD",
        currency_precision=2,
        discount_rate=Decimal("0.5"),
        discount_threshold_days=365,
        personal_use_threshold=Decimal("10000"),
        supported_methods=[CostBasisMethod.FIFO, CostBasisMethod.SPECIFIC_IDENTIFICATION],
        rules=[CGT_DISCOUNT_RULE, PERSONAL_USE_RULE, ORDINARY_INCOME_RULE, COST_BASE_RULE, DEDUCTION_RULE],
    )


PRESETS = {"AU": australia}


def load_preset(code: str) -> TaxJurisdiction:
    try:
        return PRESETS[code.upper()]()
    except KeyError:
        raise KeyError(f"No jurisdiction preset for '{code}'. Available: {', '.join(PRESETS)}") from None
