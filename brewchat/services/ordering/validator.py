"""Order validation service."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from brewchat.core.errors import InvalidQuantity, ValidationError
from brewchat.services.catalog.base import Beverage
from brewchat.services.catalog.repository import CatalogRepository
from brewchat.services.ordering.models import OrderDraft, OrderLineItem

logger = logging.getLogger(__name__)


def _normalize_value(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value).lower().strip()


class LineItemValidator:
    """Validates line items against the live catalog.

    Nothing a previous turn wrote is trusted: every line is rebuilt from the
    catalog as it is right now, which also refreshes its unit price.
    """

    def __init__(self, catalog: CatalogRepository, max_quantity: int = 20):
        self.catalog = catalog
        self.max_quantity = max_quantity

    async def resolve_beverage(self, beverage_id: str) -> Beverage:
        """Get an orderable beverage or raise ValidationError."""
        beverage = await self.catalog.get(beverage_id or "")
        if beverage is None:
            suggestions = await self.suggest_alternatives(beverage_id or "")
            hint = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
            raise ValidationError(
                f"'{beverage_id}' is not on the menu.{hint}", suggestions=suggestions
            )
        if not beverage.available:
            suggestions = await self.suggest_alternatives(beverage.name)
            raise ValidationError(
                f"{beverage.name} is currently unavailable.", suggestions=suggestions
            )
        return beverage

    def check_quantity(self, quantity: Any) -> int:
        """Validate a quantity; must be a whole number between 1 and the line cap."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidQuantity(f"Quantity must be a whole number, got {quantity!r}")
        if quantity < 1:
            raise InvalidQuantity(f"Quantity must be at least 1, got {quantity}")
        if quantity > self.max_quantity:
            raise InvalidQuantity(
                f"Quantity {quantity} is more than the {self.max_quantity} we can make per line"
            )
        return quantity

    def normalize_customizations(
        self, beverage: Beverage, customizations: Optional[Dict[str, Any]]
    ) -> Dict[str, str]:
        """
        Check every provided key/value and fill defaults for unspecified axes.

        Returns:
            Customizations in the beverage's axis order
        """
        provided: Dict[str, str] = {}
        for key, value in (customizations or {}).items():
            if value is None:
                # Unset; the axis default applies
                continue
            axis = beverage.axis(key)
            if axis is None:
                options = ", ".join(a.name for a in beverage.customizations) or "none"
                raise ValidationError(
                    f"'{key}' is not an option for {beverage.name}. Available options: {options}"
                )
            normalized = _normalize_value(value)
            if normalized not in axis.values:
                raise ValidationError(
                    f"'{value}' is not a valid {axis.name} for {beverage.name}. "
                    f"Choose one of: {', '.join(axis.values)}"
                )
            provided[axis.name] = normalized

        result: Dict[str, str] = {}
        for axis in beverage.customizations:
            if axis.name in provided:
                result[axis.name] = provided[axis.name]
            elif axis.default is not None:
                result[axis.name] = axis.default
        return result

    @staticmethod
    def unit_price(beverage: Beverage, customizations: Dict[str, str]) -> float:
        price = beverage.base_price
        for axis in beverage.customizations:
            value = customizations.get(axis.name)
            if value is not None:
                price += axis.upcharges.get(value, 0.0)
        return round(price, 2)

    @staticmethod
    def missing_axes(beverage: Beverage, line: OrderLineItem) -> List[str]:
        """Required axes the line does not specify yet."""
        return [name for name in beverage.required_axes if name not in line.customizations]

    async def build_line(
        self, beverage_id: str, customizations: Optional[Dict[str, Any]], quantity: Any
    ) -> Tuple[OrderLineItem, List[str]]:
        """
        Build a validated line item.

        Returns:
            Tuple of (line item, list of required axes still missing)
        """
        beverage = await self.resolve_beverage(beverage_id)
        quantity = self.check_quantity(quantity)
        normalized = self.normalize_customizations(beverage, customizations)
        line = OrderLineItem(
            beverage_id=beverage.id,
            beverage_name=beverage.name,
            customizations=normalized,
            quantity=quantity,
            unit_price=self.unit_price(beverage, normalized),
        )
        return line, self.missing_axes(beverage, line)

    async def revalidate_line(self, line: OrderLineItem) -> Tuple[OrderLineItem, List[str]]:
        """Rebuild a stored line against the current catalog."""
        return await self.build_line(line.beverage_id, line.customizations, line.quantity)

    async def revalidate_draft(self, draft: OrderDraft) -> Tuple[OrderDraft, List[List[str]]]:
        """
        Re-validate every line of a draft.

        Raises:
            ValidationError: naming the first line that is no longer valid

        Returns:
            Tuple of (draft with refreshed lines, missing axes per line)
        """
        lines: List[OrderLineItem] = []
        missing: List[List[str]] = []
        for index, line in enumerate(draft.items):
            try:
                fresh, line_missing = await self.revalidate_line(line)
            except ValidationError as e:
                raise ValidationError(
                    f"Line {index} ({line.describe()}) is no longer valid: {e.message} "
                    f"Modify or remove it first.",
                    suggestions=e.suggestions,
                ) from e
            lines.append(fresh)
            missing.append(line_missing)
        return draft.model_copy(update={"items": lines}), missing

    async def find_invalid_lines(self, draft: OrderDraft) -> Dict[int, str]:
        """
        Find lines that no longer match the catalog as confirmed.

        A line is invalid when its beverage or a customization disappeared, a
        required option is missing, or its price changed since it was written.

        Returns:
            Dict of line index -> reason (empty when every line is still valid)
        """
        reasons: Dict[int, str] = {}
        for index, line in enumerate(draft.items):
            try:
                fresh, line_missing = await self.revalidate_line(line)
            except ValidationError as e:
                reasons[index] = e.message
                continue
            if line_missing:
                reasons[index] = f"missing {', '.join(line_missing)}"
            elif fresh.unit_price != line.unit_price:
                reasons[index] = (
                    f"price changed from ${line.unit_price:.2f} to ${fresh.unit_price:.2f}"
                )
        return reasons

    async def suggest_alternatives(self, invalid_name: str, limit: int = 3) -> List[str]:
        """
        Suggest orderable beverages for an unknown name.

        Args:
            invalid_name: The name the model or customer used
            limit: Maximum number of suggestions

        Returns:
            List of suggested beverage ids
        """
        beverages = await self.catalog.list_all()
        invalid_lower = invalid_name.lower().replace("-", " ").strip()
        if not invalid_lower:
            return []

        suggestions = []
        for beverage in beverages:
            name_lower = beverage.name.lower()
            if (
                invalid_lower in name_lower
                or name_lower in invalid_lower
                or any(word in name_lower for word in invalid_lower.split() if len(word) > 2)
            ):
                suggestions.append(beverage.id)
                if len(suggestions) >= limit:
                    break
        return suggestions
