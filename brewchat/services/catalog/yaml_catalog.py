"""YAML-backed catalog provider."""
import logging
from pathlib import Path
from typing import Optional, Tuple

import yaml

from brewchat.core.errors import StoreUnavailable
from brewchat.services.catalog.base import Beverage, Catalog, CatalogProvider

logger = logging.getLogger(__name__)


class YamlCatalogProvider(CatalogProvider):
    """Catalog provider reading a YAML file.

    The parsed catalog is cached and re-read whenever the file's modification
    stamp changes, so edits to the menu are picked up between turns.
    """

    def __init__(self, catalog_file: Optional[str] = None):
        """Initialize with optional catalog file path."""
        if catalog_file is None:
            catalog_file = Path(__file__).parent / "data" / "catalog.yaml"
        self.catalog_file = Path(catalog_file)
        self._catalog: Optional[Catalog] = None
        self._stamp: Optional[Tuple[int, int]] = None

    def _file_stamp(self) -> Tuple[int, int]:
        stat = self.catalog_file.stat()
        return stat.st_mtime_ns, stat.st_size

    async def _load_catalog(self) -> Catalog:
        """Load catalog from YAML file."""
        try:
            stamp = self._file_stamp()
        except OSError as e:
            raise StoreUnavailable(f"Catalog file unavailable: {self.catalog_file}") from e

        if self._catalog is None or stamp != self._stamp:
            with open(self.catalog_file, "r") as f:
                data = yaml.safe_load(f) or {}
            beverages = [Beverage(**item) for item in data.get("beverages", [])]
            categories = data.get("categories") or sorted(
                {b.category for b in beverages if b.category}
            )
            self._catalog = Catalog(beverages=beverages, categories=categories)
            self._stamp = stamp
            logger.info(
                f"[CATALOG] Loaded {len(beverages)} beverages from {self.catalog_file}"
            )
        return self._catalog

    async def get_catalog(self) -> Catalog:
        """Get the full catalog."""
        return await self._load_catalog()

    async def get_beverage(self, beverage_id: str) -> Optional[Beverage]:
        """Get a beverage by id or display name."""
        catalog = await self._load_catalog()
        key = beverage_id.lower().strip()
        for beverage in catalog.beverages:
            if beverage.id.lower() == key or beverage.name.lower() == key:
                return beverage
        return None

    def invalidate(self) -> None:
        self._catalog = None
        self._stamp = None
