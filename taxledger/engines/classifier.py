"""Transaction classifier: map each transaction to its tax treatment.

Rules are plain data evaluated in ascending priority; the first rule whose
predicate matches produces the treatment. Callers extend or replace the rule
list without touching the classifier.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal

from taxledger.models.enums import TaxEventType, TradeSide, TransferDirection
from taxledger.models.jurisdiction import TaxJurisdiction
from taxledger.models.tax import TaxTreatment
from taxledger.models.transaction import (
    Airdrop,
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
    Transfer,
)
from taxledger.normalization.flows import disposal_proceeds, resolve_flows

Predicate = Callable[[BaseTransaction, TaxJurisdiction], bool]


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    priority: int
    predicate: Predicate
    event_type: TaxEventType
    classification: str | Callable[[BaseTransaction], str]

    def label(self, transaction: BaseTransaction) -> str:
        if callable(self.classification):
            return self.classification(transaction)
        return self.classification


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _is_fiat_quoted(trade: SpotTrade, jurisdiction: TaxJurisdiction) -> bool:
    return trade.quote.asset == jurisdiction.currency


def is_non_taxable_movement(tx: BaseTransaction, jurisdiction: TaxJurisdiction) -> bool:
    match tx:
        case Transfer(direction=TransferDirection.INTERNAL):
            return True
        case Transfer(own_wallet=True, income_source=None):
            return True
        case StakingDeposit() | StakingWithdrawal():
            return True
    return False


def is_disposal(tx: BaseTransaction, jurisdiction: TaxJurisdiction) -> bool:
    match tx:
        case SpotTrade(side=TradeSide.SELL):
            return True
        case SpotTrade(side=TradeSide.BUY) as trade:
            # Buying with crypto disposes of the quote asset.
            return not _is_fiat_quoted(trade, jurisdiction)
        case Swap() | LiquidityAdd() | LiquidityRemove():
            return True
        case Transfer(direction=TransferDirection.OUT, own_wallet=False):
            return True
    return False


def is_acquisition(tx: BaseTransaction, jurisdiction: TaxJurisdiction) -> bool:
    match tx:
        case SpotTrade(side=TradeSide.BUY) as trade:
            return _is_fiat_quoted(trade, jurisdiction)
        case Transfer(direction=TransferDirection.IN, own_wallet=False, income_source=None):
            return True
    return False


def is_income(tx: BaseTransaction, jurisdiction: TaxJurisdiction) -> bool:
    match tx:
        case StakingReward() | Airdrop() | Interest():
            return True
        case Transfer(direction=TransferDirection.IN, income_source=source) if source is not None:
            return True
    return False


def is_standalone_fee(tx: BaseTransaction, jurisdiction: TaxJurisdiction) -> bool:
    return isinstance(tx, FeePayment)


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def _disposal_label(tx: BaseTransaction) -> str:
    match tx:
        case SpotTrade(side=TradeSide.SELL):
            return "Sale of Cryptocurrency"
        case SpotTrade() | Swap():
            return "Trade/Exchange of Cryptocurrency"
        case LiquidityAdd():
            return "Liquidity Pool Deposit"
        case LiquidityRemove():
            return "Liquidity Pool Withdrawal"
        case Transfer():
            return "Spending or Gift of Cryptocurrency"
    return "Disposal of Cryptocurrency"


def _acquisition_label(tx: BaseTransaction) -> str:
    if isinstance(tx, Transfer):
        return "Receipt of Cryptocurrency"
    return "Purchase of Cryptocurrency"


def _income_label(tx: BaseTransaction) -> str:
    match tx:
        case StakingReward():
            return "Staking Reward"
        case Airdrop():
            return "Airdrop"
        case Interest():
            return "Interest Income"
        case Transfer(income_source=source):
            return f"{str(source).title()} Income"
    return "Ordinary Income"


def _non_taxable_label(tx: BaseTransaction) -> str:
    match tx:
        case StakingDeposit():
            return "Staking Deposit"
        case StakingWithdrawal():
            return "Staking Withdrawal"
    return "Internal Transfer"


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("non_taxable_movement", 10, is_non_taxable_movement, TaxEventType.NON_TAXABLE, _non_taxable_label),
    ClassificationRule("disposal", 20, is_disposal, TaxEventType.DISPOSAL, _disposal_label),
    ClassificationRule("acquisition", 30, is_acquisition, TaxEventType.ACQUISITION, _acquisition_label),
    ClassificationRule("income", 40, is_income, TaxEventType.INCOME, _income_label),
    ClassificationRule("standalone_fee", 50, is_standalone_fee, TaxEventType.DEDUCTIBLE, "Transaction Fee"),
)


class TransactionClassifier:
    """Classifies transactions using an ordered rule list. Pure and deterministic."""

    def __init__(self, rules: Iterable[ClassificationRule] = DEFAULT_RULES):
        # sorted() is stable, so equal priorities keep their given order.
        self.rules = sorted(rules, key=lambda rule: rule.priority)

    def with_rules(self, *extra: ClassificationRule) -> "TransactionClassifier":
        return TransactionClassifier([*self.rules, *extra])

    def classify(self, transaction: BaseTransaction, jurisdiction: TaxJurisdiction) -> TaxTreatment:
        for rule in self.rules:
            if rule.predicate(transaction, jurisdiction):
                return self._treatment(transaction, jurisdiction, rule)

        return TaxTreatment(
            event_type=TaxEventType.NON_TAXABLE,
            classification="Unclassified Transaction",
            reason="No classification rule matched; treated as non-taxable pending review",
            applicable_rules=[],
            low_confidence=True,
        )

    def _treatment(
        self,
        transaction: BaseTransaction,
        jurisdiction: TaxJurisdiction,
        rule: ClassificationRule,
    ) -> TaxTreatment:
        event_type = rule.event_type
        classification = rule.label(transaction)
        exempt = event_type == TaxEventType.DISPOSAL and self.is_personal_use_exempt(transaction, jurisdiction)

        reason = f"Classified as {event_type} - {classification}"
        if exempt:
            reason += (
                f". Personal use asset with proceeds below "
                f"{jurisdiction.personal_use_threshold} {jurisdiction.currency}; exempt."
            )
        elif transaction.personal_use:
            reason += ". Designated as personal use asset."

        rules = jurisdiction.rule_ids_for(event_type)
        discount_rule = next((r.id for r in jurisdiction.rules if r.id.endswith("CGT_DISCOUNT")), None)
        personal_use_rule = next((r.id for r in jurisdiction.rules if r.id.endswith("PERSONAL_USE_EXEMPTION")), None)
        if exempt:
            rules = [r for r in rules if r != discount_rule]
        else:
            rules = [r for r in rules if r != personal_use_rule]

        return TaxTreatment(
            event_type=event_type,
            classification=classification,
            reason=reason,
            personal_use_exempt=exempt,
            discount_eligible=event_type == TaxEventType.DISPOSAL and not exempt and jurisdiction.discount_rate > 0,
            applicable_rules=rules,
            matched_rule=rule.name,
        )

    @staticmethod
    def is_personal_use_exempt(transaction: BaseTransaction, jurisdiction: TaxJurisdiction) -> bool:
        """Requires the explicit flag and proceeds below the threshold; never inferred."""
        if not transaction.personal_use:
            return False
        proceeds = disposal_proceeds(resolve_flows(transaction, jurisdiction.currency))
        if proceeds is None:
            return False
        return jurisdiction.is_below_personal_use_threshold(max(proceeds, Decimal("0")))
