"""Acquisition lot and FIFO draw models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class Lot(BaseModel):
    """A quantity of one asset acquired at one instant for one per-unit cost.

    ``remaining_quantity`` is the only field that changes after creation, and
    only the ledger changes it (downwards).
    """

    id: str
    asset: str
    quantity: Decimal = Field(gt=0)
    cost_basis_per_unit: Decimal = Field(ge=0)
    acquired_at: datetime
    source_transaction_id: str
    remaining_quantity: Decimal = Field(ge=0)

    @property
    def total_cost_basis(self) -> Decimal:
        return self.quantity * self.cost_basis_per_unit

    @property
    def remaining_cost_basis(self) -> Decimal:
        return self.remaining_quantity * self.cost_basis_per_unit

    @property
    def is_open(self) -> bool:
        return self.remaining_quantity > 0


class LotDraw(BaseModel):
    """Quantity taken from a single lot by one disposal."""

    lot_id: str
    asset: str
    quantity: Decimal = Field(gt=0)
    cost_basis_per_unit: Decimal
    acquired_at: datetime

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.cost_basis_per_unit


class DisposalConsumption(BaseModel):
    asset: str
    requested_quantity: Decimal
    draws: list[LotDraw] = Field(default_factory=list)
    shortfall: Decimal = Decimal("0")

    @property
    def drawn_quantity(self) -> Decimal:
        return sum((d.quantity for d in self.draws), Decimal("0"))

    @property
    def total_cost_basis(self) -> Decimal:
        return sum((d.cost_basis for d in self.draws), Decimal("0"))

    @property
    def has_shortfall(self) -> bool:
        return self.shortfall > 0
