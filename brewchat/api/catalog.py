"""Catalog API endpoints."""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Request

from brewchat.api.schemas import CamelModel
from brewchat.core.dependencies import get_catalog_repository
from brewchat.services.catalog.repository import CatalogRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class CustomizationResponse(CamelModel):
    name: str
    values: List[str]
    required: bool = False
    default: Optional[str] = None
    upcharges: Dict[str, float] = {}


class BeverageResponse(CamelModel):
    """Catalog beverage."""
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = []
    base_price: float
    available: bool = True
    customizations: List[CustomizationResponse] = []


class CatalogResponse(CamelModel):
    beverages: List[BeverageResponse]
    categories: List[str] = []


@router.get("/api/catalog", response_model=CatalogResponse, response_model_by_alias=True)
async def get_catalog(
    request: Request,
    catalog_repository: CatalogRepository = Depends(get_catalog_repository),
):
    """Get the full beverage list, including unavailable drinks."""
    logger.info(
        f"[CATALOG] Request received - Client: {request.client.host if request.client else 'unknown'}"
    )
    catalog = await catalog_repository.get_catalog()
    logger.info(
        f"[CATALOG] Catalog loaded - {len(catalog.beverages)} beverages, "
        f"{len(catalog.categories)} categories"
    )
    return CatalogResponse(
        beverages=[
            BeverageResponse(
                id=beverage.id,
                name=beverage.name,
                description=beverage.description,
                category=beverage.category,
                tags=beverage.tags,
                base_price=beverage.base_price,
                available=beverage.available,
                customizations=[
                    CustomizationResponse(**axis.model_dump()) for axis in beverage.customizations
                ],
            )
            for beverage in catalog.beverages
        ],
        categories=catalog.categories,
    )
