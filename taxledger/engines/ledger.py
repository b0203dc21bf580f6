"""Lot ledger with FIFO and specific-identification consumption."""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal

from taxledger.exceptions import InvalidQuantityError, LedgerOrderError, LotSelectionError
from taxledger.models.lot import DisposalConsumption, Lot, LotDraw

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def draw_from(lots: Iterable[Lot], quantity: Decimal) -> tuple[list[LotDraw], Decimal]:
    """Plan draws of ``quantity`` from ``lots`` in the order given.

    Does not touch the lots. Returns ``(draws, shortfall)``.
    """
    remaining = quantity
    draws: list[LotDraw] = []
    for lot in lots:
        if remaining <= 0:
            break
        if lot.remaining_quantity <= 0:
            continue
        taken = min(lot.remaining_quantity, remaining)
        draws.append(
            LotDraw(
                lot_id=lot.id,
                asset=lot.asset,
                quantity=taken,
                cost_basis_per_unit=lot.cost_basis_per_unit,
                acquired_at=lot.acquired_at,
            )
        )
        remaining -= taken
    return draws, max(remaining, ZERO)


class LotLedger:
    """Per-asset acquisition lots, consumed oldest first unless identified by id.

    One ledger belongs to one report invocation. Lots are appended in
    processing order and never reordered; a per-asset cursor skips lots that
    are already exhausted so consumption stays linear over a run.
    """

    def __init__(self) -> None:
        self._lots: dict[str, list[Lot]] = {}
        self._cursor: dict[str, int] = {}
        self._acquired: dict[str, Decimal] = {}
        self._consumed: dict[str, Decimal] = {}
        self._index: dict[str, Lot] = {}

    def acquire(
        self,
        asset: str,
        quantity: Decimal,
        cost_basis_per_unit: Decimal,
        timestamp: datetime,
        transaction_id: str,
    ) -> Lot:
        """Append a new lot for ``asset``."""
        asset = asset.upper()
        if quantity <= 0:
            raise InvalidQuantityError(asset, quantity)
        lots = self._lots.setdefault(asset, [])
        if lots and timestamp < lots[-1].acquired_at:
            raise LedgerOrderError(asset, timestamp, lots[-1].acquired_at)

        lot = Lot(
            id=f"{transaction_id}:{asset}:{len(lots) + 1}",
            asset=asset,
            quantity=quantity,
            cost_basis_per_unit=cost_basis_per_unit,
            acquired_at=timestamp,
            source_transaction_id=transaction_id,
            remaining_quantity=quantity,
        )
        lots.append(lot)
        self._index[lot.id] = lot
        self._acquired[asset] = self._acquired.get(asset, ZERO) + quantity
        return lot

    def consume(self, asset: str, quantity: Decimal, timestamp: datetime) -> DisposalConsumption:
        """Draw ``quantity`` of ``asset`` FIFO from lots acquired at or before ``timestamp``."""
        asset = asset.upper()
        if quantity <= 0:
            raise InvalidQuantityError(asset, quantity)

        lots = self._lots.get(asset, [])
        start = self._cursor.get(asset, 0)
        eligible = []
        for lot in lots[start:]:
            if lot.acquired_at > timestamp:
                break
            eligible.append(lot)

        draws, shortfall = draw_from(eligible, quantity)
        by_id = {lot.id: lot for lot in eligible}
        for draw in draws:
            lot = by_id[draw.lot_id]
            lot.remaining_quantity -= draw.quantity

        self._advance(asset)

        drawn = quantity - shortfall
        self._consumed[asset] = self._consumed.get(asset, ZERO) + drawn
        if shortfall > 0:
            logger.warning("Ledger shortfall for %s: requested %s, available %s", asset, quantity, drawn)

        return DisposalConsumption(
            asset=asset,
            requested_quantity=quantity,
            draws=draws,
            shortfall=shortfall,
        )

    def consume_specific(
        self,
        asset: str,
        quantity: Decimal,
        selections: Mapping[str, Decimal],
        timestamp: datetime,
    ) -> DisposalConsumption:
        """Draw ``quantity`` of ``asset`` from the lots named in ``selections``.

        ``selections`` maps lot id to quantity and may name lots of other
        assets, which are ignored here. When it names no lot of ``asset`` the
        disposal falls back to FIFO. Otherwise the selected quantities must
        add up to ``quantity`` exactly; nothing is drawn unless every
        selection is valid.
        """
        asset = asset.upper()
        if quantity <= 0:
            raise InvalidQuantityError(asset, quantity)

        draws: list[LotDraw] = []
        for lot_id, selected in selections.items():
            lot = self._index.get(lot_id)
            if lot is None:
                raise LotSelectionError(asset, f"no lot with id {lot_id}")
            if lot.asset != asset:
                continue
            selected = Decimal(selected)
            if selected <= 0:
                raise InvalidQuantityError(asset, selected)
            if lot.acquired_at > timestamp:
                raise LotSelectionError(asset, f"lot {lot_id} was acquired after {timestamp.isoformat()}")
            if selected > lot.remaining_quantity:
                raise LotSelectionError(
                    asset, f"lot {lot_id} has {lot.remaining_quantity} remaining, {selected} selected"
                )
            draws.append(
                LotDraw(
                    lot_id=lot.id,
                    asset=asset,
                    quantity=selected,
                    cost_basis_per_unit=lot.cost_basis_per_unit,
                    acquired_at=lot.acquired_at,
                )
            )

        if not draws:
            return self.consume(asset, quantity, timestamp)
        drawn = sum((draw.quantity for draw in draws), ZERO)
        if drawn != quantity:
            raise LotSelectionError(asset, f"selected {drawn} but the disposal is {quantity}")

        for draw in draws:
            self._index[draw.lot_id].remaining_quantity -= draw.quantity
        self._advance(asset)
        self._consumed[asset] = self._consumed.get(asset, ZERO) + quantity
        logger.debug("Consumed %s %s from %d selected lots", quantity, asset, len(draws))
        return DisposalConsumption(asset=asset, requested_quantity=quantity, draws=draws)

    def _advance(self, asset: str) -> None:
        lots = self._lots.get(asset, [])
        start = self._cursor.get(asset, 0)
        while start < len(lots) and lots[start].remaining_quantity == 0:
            start += 1
        self._cursor[asset] = start

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def assets(self) -> list[str]:
        return sorted(self._lots)

    def lots(self, asset: str) -> list[Lot]:
        return list(self._lots.get(asset.upper(), []))

    def open_lots(self, asset: str | None = None) -> list[Lot]:
        assets = [asset.upper()] if asset else self.assets
        return [lot for a in assets for lot in self._lots.get(a, []) if lot.is_open]

    def remaining(self, asset: str) -> Decimal:
        return sum((lot.remaining_quantity for lot in self._lots.get(asset.upper(), [])), ZERO)

    def total_acquired(self, asset: str) -> Decimal:
        return self._acquired.get(asset.upper(), ZERO)

    def total_consumed(self, asset: str) -> Decimal:
        return self._consumed.get(asset.upper(), ZERO)

    def snapshot(self) -> list[Lot]:
        """Copies of every open lot, ordered by asset then acquisition."""
        return [lot.model_copy() for lot in self.open_lots()]
