"""Shared API models."""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from brewchat.services.ordering.models import OrderLineItem


class CamelModel(BaseModel):
    """Serializes with camelCase keys; accepts either case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderLineResponse(CamelModel):
    """One line of a draft or submitted order."""

    beverage_id: str
    beverage_name: str
    customizations: Dict[str, str] = {}
    quantity: int
    unit_price: float
    line_total: float

    @classmethod
    def from_line(cls, line: OrderLineItem) -> "OrderLineResponse":
        return cls(
            beverage_id=line.beverage_id,
            beverage_name=line.beverage_name,
            customizations=line.customizations,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
        )


class SubmittedOrderResponse(CamelModel):
    order_id: str
    session_id: Optional[str] = None
    summary: str
    submitted_at: datetime
    items: List[OrderLineResponse]
    total: float
