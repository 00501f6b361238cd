"""Catalog provider interface."""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class CustomizationAxis(BaseModel):
    """One way a beverage can be customized, e.g. size or milk."""

    name: str
    values: List[str]
    required: bool = False
    default: Optional[str] = None
    upcharges: Dict[str, float] = {}  # value -> price added to the base price

    @model_validator(mode="after")
    def _check_values(self) -> "CustomizationAxis":
        self.name = self.name.lower().strip()
        self.values = [value.lower().strip() for value in self.values]
        if not self.values:
            raise ValueError(f"axis '{self.name}' has no values")
        if self.default is not None:
            self.default = self.default.lower().strip()
            if self.default not in self.values:
                raise ValueError(f"default '{self.default}' is not a value of axis '{self.name}'")
        self.upcharges = {key.lower().strip(): price for key, price in self.upcharges.items()}
        return self


class Beverage(BaseModel):
    """Orderable beverage."""

    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = []
    base_price: float
    available: bool = True
    customizations: List[CustomizationAxis] = []

    def axis(self, name: str) -> Optional[CustomizationAxis]:
        """Get a customization axis by name."""
        name_lower = name.lower().strip()
        for axis in self.customizations:
            if axis.name == name_lower:
                return axis
        return None

    @property
    def required_axes(self) -> List[str]:
        return [axis.name for axis in self.customizations if axis.required]


class Catalog(BaseModel):
    """Catalog model."""

    beverages: List[Beverage]
    categories: List[str] = Field(default_factory=list)


class CatalogProvider(ABC):
    """Abstract base class for catalog providers."""

    @abstractmethod
    async def get_catalog(self) -> Catalog:
        """Get the full catalog."""
        pass

    @abstractmethod
    async def get_beverage(self, beverage_id: str) -> Optional[Beverage]:
        """Get a beverage by id or display name."""
        pass

    @abstractmethod
    def invalidate(self) -> None:
        """Drop any cached catalog so the next read sees fresh data."""
        pass
