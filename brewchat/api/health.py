"""Health check endpoint."""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brewchat.core.dependencies import get_catalog_repository
from brewchat.core.errors import InfrastructureError
from brewchat.db.database import get_db
from brewchat.services.catalog.repository import CatalogRepository

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
    catalog: CatalogRepository = Depends(get_catalog_repository),
):
    """Report whether the store and the catalog are reachable."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    checks = {}
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.warning(f"[HEALTH] Database check failed: {type(e).__name__}: {e}")
        checks["database"] = "unavailable"
    try:
        beverages = await catalog.list_all()
        checks["catalog"] = f"{len(beverages)} beverages"
    except InfrastructureError as e:
        logger.warning(f"[HEALTH] Catalog check failed: {e.message}")
        checks["catalog"] = "unavailable"

    healthy = "unavailable" not in checks.values()
    return {"status": "healthy" if healthy else "degraded", "checks": checks}
