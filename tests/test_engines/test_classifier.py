"""Tests for the rule-based transaction classifier."""

from datetime import UTC, datetime
from decimal import Decimal

from taxledger.engines.classifier import ClassificationRule, TransactionClassifier
from taxledger.models.enums import IncomeSource, TaxEventType, TradeSide, TransferDirection
from taxledger.models.transaction import (
    Airdrop,
    AssetAmount,
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
    UnknownTransaction,
)

WHEN = datetime(2024, 2, 1, tzinfo=UTC)


def _amount(asset: str, amount: str, fiat: str | None = None) -> AssetAmount:
    return AssetAmount(asset=asset, amount=Decimal(amount), fiat_value=Decimal(fiat) if fiat else None)


class TestClassification:
    def setup_method(self):
        self.classifier = TransactionClassifier()

    def test_fiat_purchase_is_acquisition(self, au, buy):
        treatment = self.classifier.classify(buy("t1", WHEN, "1", "30000"), au)
        assert treatment.event_type == TaxEventType.ACQUISITION
        assert treatment.classification == "Purchase of Cryptocurrency"
        assert treatment.matched_rule == "acquisition"
        assert "AU_COST_BASE" in treatment.applicable_rules

    def test_sale_is_discount_eligible_disposal(self, au, sell):
        treatment = self.classifier.classify(sell("t1", WHEN, "1", "30000"), au)
        assert treatment.event_type == TaxEventType.DISPOSAL
        assert treatment.discount_eligible
        assert not treatment.personal_use_exempt
        assert "AU_CGT_DISCOUNT" in treatment.applicable_rules
        assert "AU_PERSONAL_USE_EXEMPTION" not in treatment.applicable_rules

    def test_crypto_quoted_purchase_is_disposal(self, au):
        trade = SpotTrade(
            id="t1", timestamp=WHEN,
            base=_amount("ETH", "10"), quote=_amount("BTC", "0.5", "30000"),
            side=TradeSide.BUY,
        )
        treatment = self.classifier.classify(trade, au)
        assert treatment.event_type == TaxEventType.DISPOSAL
        assert treatment.classification == "Trade/Exchange of Cryptocurrency"

    def test_swap_and_liquidity_are_disposals(self, au):
        swap = Swap(id="s", timestamp=WHEN, sent=_amount("ETH", "1"), received=_amount("USDC", "2000"))
        add = LiquidityAdd(id="a", timestamp=WHEN, deposited=[_amount("ETH", "1"), _amount("USDC", "2000")])
        remove = LiquidityRemove(id="r", timestamp=WHEN, pool_token=_amount("UNI-V2", "5"),
                                 withdrawn=[_amount("ETH", "1")])
        for tx in (swap, add, remove):
            assert self.classifier.classify(tx, au).event_type == TaxEventType.DISPOSAL

    def test_own_wallet_transfer_is_non_taxable(self, au):
        transfer = Transfer(id="t", timestamp=WHEN, asset=_amount("BTC", "1"), direction=TransferDirection.OUT)
        treatment = self.classifier.classify(transfer, au)
        assert treatment.event_type == TaxEventType.NON_TAXABLE
        assert treatment.classification == "Internal Transfer"
        assert not treatment.low_confidence

    def test_third_party_transfers(self, au):
        outbound = Transfer(id="o", timestamp=WHEN, asset=_amount("BTC", "1"),
                            direction=TransferDirection.OUT, own_wallet=False)
        inbound = Transfer(id="i", timestamp=WHEN, asset=_amount("BTC", "1"),
                           direction=TransferDirection.IN, own_wallet=False)
        assert self.classifier.classify(outbound, au).event_type == TaxEventType.DISPOSAL
        assert self.classifier.classify(inbound, au).event_type == TaxEventType.ACQUISITION

    def test_staking_moves_are_non_taxable(self, au):
        for tx in (
            StakingDeposit(id="d", timestamp=WHEN, asset=_amount("ETH", "32")),
            StakingWithdrawal(id="w", timestamp=WHEN, asset=_amount("ETH", "32")),
        ):
            assert self.classifier.classify(tx, au).event_type == TaxEventType.NON_TAXABLE

    def test_rewards_are_income(self, au):
        mining = Transfer(id="m", timestamp=WHEN, asset=_amount("BTC", "0.01"),
                          direction=TransferDirection.IN, income_source=IncomeSource.MINING)
        for tx in (
            StakingReward(id="s", timestamp=WHEN, asset=_amount("ETH", "0.1")),
            Airdrop(id="a", timestamp=WHEN, asset=_amount("UNI", "400")),
            Interest(id="i", timestamp=WHEN, asset=_amount("USDC", "5")),
            mining,
        ):
            treatment = self.classifier.classify(tx, au)
            assert treatment.event_type == TaxEventType.INCOME
            assert not treatment.discount_eligible
        assert self.classifier.classify(mining, au).classification == "Mining Income"

    def test_standalone_fee_is_deductible(self, au):
        fee = FeePayment(id="f", timestamp=WHEN, asset=_amount("AUD", "12"))
        treatment = self.classifier.classify(fee, au)
        assert treatment.event_type == TaxEventType.DEDUCTIBLE
        assert treatment.classification == "Transaction Fee"

    def test_unknown_is_low_confidence(self, au):
        treatment = self.classifier.classify(UnknownTransaction(id="u", timestamp=WHEN, raw_type="bridge"), au)
        assert treatment.event_type == TaxEventType.NON_TAXABLE
        assert treatment.low_confidence
        assert treatment.matched_rule is None

    def test_classification_is_deterministic(self, au, sell):
        tx = sell("t1", WHEN, "1", "30000")
        assert self.classifier.classify(tx, au) == self.classifier.classify(tx, au)


class TestPersonalUse:
    def setup_method(self):
        self.classifier = TransactionClassifier()

    def test_flagged_small_disposal_is_exempt(self, au, sell):
        treatment = self.classifier.classify(sell("t1", WHEN, "0.1", "5000", personal_use=True), au)
        assert treatment.personal_use_exempt
        assert not treatment.discount_eligible
        assert "AU_PERSONAL_USE_EXEMPTION" in treatment.applicable_rules

    def test_flag_required(self, au, sell):
        treatment = self.classifier.classify(sell("t1", WHEN, "0.1", "5000"), au)
        assert not treatment.personal_use_exempt

    def test_threshold_is_exclusive(self, au, sell):
        treatment = self.classifier.classify(sell("t1", WHEN, "0.2", "10000", personal_use=True), au)
        assert not treatment.personal_use_exempt
        assert "Designated as personal use asset" in treatment.reason


class TestCustomRules:
    def test_extra_rule_takes_priority(self, au):
        def is_bridge(tx, jurisdiction):
            return isinstance(tx, UnknownTransaction) and tx.raw_type == "bridge"

        bridge = ClassificationRule("bridge", 5, is_bridge, TaxEventType.NON_TAXABLE, "Bridge Transfer")
        classifier = TransactionClassifier().with_rules(bridge)
        treatment = classifier.classify(UnknownTransaction(id="u", timestamp=WHEN, raw_type="bridge"), au)
        assert treatment.classification == "Bridge Transfer"
        assert treatment.matched_rule == "bridge"
        assert not treatment.low_confidence
