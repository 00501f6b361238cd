"""Catalog repository."""
from typing import List, Optional

from brewchat.services.catalog.base import Beverage, Catalog, CatalogProvider


class CatalogRepository:
    """Repository for catalog reads."""

    def __init__(self, provider: CatalogProvider):
        self.provider = provider

    async def get_catalog(self) -> Catalog:
        """Get the full catalog."""
        return await self.provider.get_catalog()

    async def get(self, beverage_id: str) -> Optional[Beverage]:
        """Get a beverage by id or name; None if unknown."""
        if not beverage_id:
            return None
        return await self.provider.get_beverage(beverage_id)

    async def list_all(self) -> List[Beverage]:
        """List beverages that can currently be ordered."""
        catalog = await self.get_catalog()
        return [beverage for beverage in catalog.beverages if beverage.available]

    def invalidate(self) -> None:
        self.provider.invalidate()

    async def get_catalog_text(self) -> str:
        """Get catalog as formatted text for LLM context."""
        catalog = await self.get_catalog()
        beverages = [b for b in catalog.beverages if b.available]
        lines = ["Menu:"]
        categories = list(catalog.categories)
        uncategorized = [b for b in beverages if b.category not in categories]
        if uncategorized:
            categories.append(None)
        for category in categories:
            in_category = [b for b in beverages if b.category == category]
            if not in_category:
                continue
            lines.append(f"\n{category.title() if category else 'Other'}:")
            for beverage in in_category:
                desc_str = f" - {beverage.description}" if beverage.description else ""
                lines.append(
                    f"  - {beverage.name} [id: {beverage.id}] ${beverage.base_price:.2f}{desc_str}"
                )
                for axis in beverage.customizations:
                    flags = []
                    if axis.required:
                        flags.append("required")
                    if axis.default:
                        flags.append(f"default {axis.default}")
                    flag_str = f" ({', '.join(flags)})" if flags else ""
                    values = ", ".join(
                        f"{value} +${axis.upcharges[value]:.2f}" if axis.upcharges.get(value) else value
                        for value in axis.values
                    )
                    lines.append(f"      {axis.name}{flag_str}: {values}")
        return "\n".join(lines)
