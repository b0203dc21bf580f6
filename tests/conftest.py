"""Shared test fixtures for taxledger."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from taxledger.models.enums import TradeSide
from taxledger.models.jurisdiction import TaxJurisdiction, australia
from taxledger.models.transaction import AssetAmount, SpotTrade


def _fee(amount: str) -> AssetAmount | None:
    return AssetAmount(asset="AUD", amount=Decimal(amount)) if Decimal(amount) else None


@pytest.fixture
def au() -> TaxJurisdiction:
    return australia()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 1, tzinfo=UTC)


@pytest.fixture
def buy():
    """Factory for an AUD-quoted spot purchase."""

    def _buy(tx_id: str, when: datetime, quantity: str, total: str, fee: str = "0",
             asset: str = "BTC", source: str = "binance") -> SpotTrade:
        return SpotTrade(
            id=tx_id,
            timestamp=when,
            source=source,
            base=AssetAmount(asset=asset, amount=Decimal(quantity)),
            quote=AssetAmount(asset="AUD", amount=Decimal(total)),
            side=TradeSide.BUY,
            fee=_fee(fee),
        )

    return _buy


@pytest.fixture
def sell():
    """Factory for an AUD-quoted spot sale."""

    def _sell(tx_id: str, when: datetime, quantity: str, total: str, fee: str = "0",
              asset: str = "BTC", source: str = "binance", personal_use: bool = False) -> SpotTrade:
        return SpotTrade(
            id=tx_id,
            timestamp=when,
            source=source,
            base=AssetAmount(asset=asset, amount=Decimal(quantity)),
            quote=AssetAmount(asset="AUD", amount=Decimal(total)),
            side=TradeSide.SELL,
            fee=_fee(fee),
            personal_use=personal_use,
        )

    return _sell


@pytest.fixture
def fifo_history(buy, sell) -> list[SpotTrade]:
    """Two BTC purchases followed by a partial sale, all in the 2023-2024 tax year."""
    return [
        buy("buy-1", datetime(2023, 8, 1, tzinfo=UTC), "1.0", "30000", fee="30"),
        buy("buy-2", datetime(2023, 9, 1, tzinfo=UTC), "0.5", "22500", fee="22.50"),
        sell("sell-1", datetime(2024, 3, 1, tzinfo=UTC), "0.3", "15600", fee="15.60"),
    ]
