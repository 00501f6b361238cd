"""Order models."""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DraftStatus(str, Enum):
    """Lifecycle of an in-progress order."""

    BUILDING = "building"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"

    def __str__(self) -> str:
        return self.value


class OrderLineItem(BaseModel):
    """One beverage line in a draft."""

    beverage_id: str
    beverage_name: str
    customizations: Dict[str, str] = {}
    quantity: int = Field(default=1, ge=1)
    unit_price: float = 0.0

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)

    def describe(self) -> str:
        """Short human-readable form, e.g. '2x Latte (size: large, milk: oat)'."""
        custom_str = ""
        if self.customizations:
            custom_str = " (" + ", ".join(f"{k}: {v}" for k, v in self.customizations.items()) + ")"
        return f"{self.quantity}x {self.beverage_name}{custom_str}"


class OrderDraft(BaseModel):
    """The in-progress order attached to a session."""

    draft_id: str
    items: List[OrderLineItem] = []
    status: DraftStatus = DraftStatus.BUILDING

    @property
    def is_active(self) -> bool:
        """Active drafts can still be changed by order tools."""
        return self.status in (DraftStatus.BUILDING, DraftStatus.AWAITING_CONFIRMATION)

    @property
    def subtotal(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)


class SubmittedOrder(BaseModel):
    """Immutable snapshot of a confirmed draft."""

    id: str
    session_id: str
    draft_id: str
    owner: str
    items: List[OrderLineItem]
    subtotal: float
    tax: float
    total: float
    summary: str
    submitted_at: datetime


class OrderConfirmation(BaseModel):
    """Artifact returned to the caller after approval."""

    order_id: str
    summary: str
    submitted_at: datetime
    items: List[OrderLineItem]
    total: float
    session_id: Optional[str] = None
