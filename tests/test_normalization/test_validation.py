"""Tests for transaction validation."""

from datetime import UTC, datetime
from decimal import Decimal

from taxledger.models.enums import IssueSeverity
from taxledger.models.transaction import AssetAmount, LiquidityAdd, SpotTrade, StakingReward
from taxledger.normalization.validation import find_duplicate_ids, validate_batch, validate_transaction

NOW = datetime(2025, 1, 1, tzinfo=UTC)


def _codes(result) -> list[str]:
    return [issue.code for issue in result.issues]


class TestValidateTransaction:
    def test_valid_trade(self, buy):
        result = validate_transaction(buy("b1", datetime(2024, 1, 1, tzinfo=UTC), "1", "30000"), NOW)
        assert result.is_valid
        assert result.issues == []

    def test_missing_id_and_timestamp(self):
        reward = StakingReward(asset=AssetAmount(asset="ETH", amount=Decimal("1")))
        result = validate_transaction(reward, NOW)
        assert not result.is_valid
        assert _codes(result) == ["MISSING_ID", "MISSING_TIMESTAMP"]

    def test_future_dated_is_warning(self, buy):
        result = validate_transaction(buy("b1", datetime(2026, 1, 1, tzinfo=UTC), "1", "30000"), NOW)
        assert result.is_valid
        assert _codes(result) == ["FUTURE_DATED"]
        assert result.warnings[0].severity == IssueSeverity.WARNING

    def test_negative_price_and_fee(self):
        reward = StakingReward(
            id="r1", timestamp=datetime(2024, 1, 1, tzinfo=UTC), price=Decimal("-1"),
            fee=AssetAmount(asset="AUD", amount=Decimal("-2")),
            asset=AssetAmount(asset="ETH", amount=Decimal("1")),
        )
        assert _codes(validate_transaction(reward, NOW)) == ["NEGATIVE_PRICE", "NEGATIVE_FEE"]

    def test_zero_amount_and_missing_asset(self):
        trade = SpotTrade(
            id="t1", timestamp=datetime(2024, 1, 1, tzinfo=UTC), side="BUY",
            base=AssetAmount(asset="", amount=Decimal("1")),
            quote=AssetAmount(asset="AUD", amount=Decimal("0")),
        )
        assert _codes(validate_transaction(trade, NOW)) == ["MISSING_ASSET", "ZERO_AMOUNT"]

    def test_same_asset_trade(self):
        trade = SpotTrade(
            id="t1", timestamp=datetime(2024, 1, 1, tzinfo=UTC), side="BUY",
            base=AssetAmount(asset="BTC", amount=Decimal("1")),
            quote=AssetAmount(asset="btc", amount=Decimal("1")),
        )
        assert _codes(validate_transaction(trade, NOW)) == ["SAME_ASSET_TRADE"]

    def test_empty_liquidity(self):
        add = LiquidityAdd(id="lp", timestamp=datetime(2024, 1, 1, tzinfo=UTC), deposited=[])
        assert _codes(validate_transaction(add, NOW)) == ["EMPTY_LIQUIDITY"]

    def test_issues_carry_transaction_id(self):
        reward = StakingReward(id="r9", asset=AssetAmount(asset="ETH", amount=Decimal("1")))
        issue = validate_transaction(reward, NOW).errors[0]
        assert issue.transaction_id == "r9"
        assert issue.field == "timestamp"


class TestBatch:
    def test_duplicates_in_first_seen_order(self, buy):
        when = datetime(2024, 1, 1, tzinfo=UTC)
        batch = [buy("b", when, "1", "1"), buy("a", when, "1", "1"), buy("a", when, "1", "1"),
                 buy("b", when, "1", "1"), buy("c", when, "1", "1")]
        assert find_duplicate_ids(batch) == ["b", "a"]

    def test_validate_batch_keyed_by_index(self, buy):
        good = buy("b1", datetime(2024, 1, 1, tzinfo=UTC), "1", "30000")
        bad = StakingReward(id="r1", asset=AssetAmount(asset="ETH", amount=Decimal("1")))
        results = validate_batch([good, bad], NOW)
        assert results[0].is_valid
        assert not results[1].is_valid
