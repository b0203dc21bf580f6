"""Tests for transaction models."""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import TypeAdapter, ValidationError

from taxledger.models.transaction import (
    AssetAmount,
    LiquidityAdd,
    LiquidityRemove,
    SpotTrade,
    Swap,
    Transaction,
    Transfer,
    UnknownTransaction,
    asset_amounts,
    primary_asset,
)

ADAPTER = TypeAdapter(Transaction)


class TestTransactionModels:
    def test_timestamp_normalized_to_utc(self):
        sydney = timezone(timedelta(hours=10))
        tx = Transfer(id="t", timestamp=datetime(2024, 1, 1, 10, tzinfo=sydney),
                      asset=AssetAmount(asset="btc", amount=Decimal("1")), direction="IN")
        assert tx.timestamp == datetime(2024, 1, 1, 0, tzinfo=UTC)
        assert tx.timestamp.tzinfo == UTC

    def test_naive_timestamp_assumed_utc(self):
        tx = UnknownTransaction(id="u", timestamp=datetime(2024, 1, 1))
        assert tx.timestamp.tzinfo == UTC

    def test_asset_symbol_uppercased(self):
        assert AssetAmount(asset=" eth ", amount=Decimal("-2")).asset == "ETH"
        assert AssetAmount(asset="eth", amount=Decimal("-2")).quantity == Decimal("2")

    def test_discriminated_parsing(self):
        tx = ADAPTER.validate_python({
            "kind": "SWAP",
            "id": "sw-1",
            "timestamp": "2024-03-01T12:00:00Z",
            "sent": {"asset": "ETH", "amount": "1.5"},
            "received": {"asset": "USDC", "amount": "4500", "fiat_value": "6800"},
        })
        assert isinstance(tx, Swap)
        assert tx.sent.amount == Decimal("1.5")
        assert tx.received.fiat_value == Decimal("6800")
        assert tx.source == "UNKNOWN"

    def test_transactions_are_immutable(self):
        tx = UnknownTransaction(id="u")
        with pytest.raises(ValidationError):
            tx.id = "other"


class TestAssetAccessors:
    def test_spot_trade(self, buy):
        trade = buy("b", datetime(2024, 1, 1, tzinfo=UTC), "1", "30000")
        assert [a.asset for a in asset_amounts(trade)] == ["BTC", "AUD"]
        assert primary_asset(trade) == "BTC"

    def test_liquidity(self):
        add = LiquidityAdd(id="a", deposited=[AssetAmount(asset="ETH", amount=Decimal("1")),
                                               AssetAmount(asset="USDC", amount=Decimal("2000"))],
                           pool_token=AssetAmount(asset="LP", amount=Decimal("3")))
        remove = LiquidityRemove(id="r", pool_token=AssetAmount(asset="LP", amount=Decimal("3")),
                                 withdrawn=[AssetAmount(asset="ETH", amount=Decimal("1"))])
        assert [a.asset for a in asset_amounts(add)] == ["ETH", "USDC", "LP"]
        assert primary_asset(add) == "ETH"
        assert primary_asset(remove) == "LP"

    def test_unknown_without_assets(self):
        assert primary_asset(UnknownTransaction(id="u")) == "UNKNOWN"

    def test_spot_trade_fields(self):
        trade = SpotTrade(id="s", base=AssetAmount(asset="ETH", amount=Decimal("1")),
                          quote=AssetAmount(asset="BTC", amount=Decimal("0.05")), side="SELL")
        assert trade.kind == "SPOT_TRADE"
