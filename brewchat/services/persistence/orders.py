"""Submitted order persistence service."""
import logging
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brewchat.core.errors import StoreUnavailable
from brewchat.db.models import SubmittedOrderRecord
from brewchat.services.ordering.models import OrderLineItem, SubmittedOrder

logger = logging.getLogger(__name__)


class SubmittedOrderStore:
    """Service for reading and writing submitted orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def build_record(order: SubmittedOrder) -> SubmittedOrderRecord:
        """Map an order to its row; the caller adds it to a transaction."""
        return SubmittedOrderRecord(
            id=order.id,
            session_id=order.session_id,
            draft_id=order.draft_id,
            owner=order.owner,
            items=[item.model_dump(mode="json") for item in order.items],
            subtotal=order.subtotal,
            tax=order.tax,
            total=order.total,
            summary=order.summary,
            submitted_at=order.submitted_at,
        )

    async def get_order_by_draft(self, draft_id: str) -> Optional[SubmittedOrder]:
        """Get the order a draft was submitted as, if any."""
        return await self._fetch_one(SubmittedOrderRecord.draft_id == draft_id)

    async def list_for_owner(self, owner: str, limit: int = 20) -> List[SubmittedOrder]:
        """Most recent orders of one owner."""
        try:
            result = await self.db.execute(
                select(SubmittedOrderRecord)
                .where(SubmittedOrderRecord.owner == owner)
                .order_by(desc(SubmittedOrderRecord.submitted_at))
                .limit(limit)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[ORDER STORE] Listing orders failed - Owner: {owner}, Error: {e}")
            raise StoreUnavailable("Order store is unavailable") from e
        return [self._to_domain(record) for record in result.scalars().all()]

    async def _fetch_one(self, criterion) -> Optional[SubmittedOrder]:
        try:
            result = await self.db.execute(select(SubmittedOrderRecord).where(criterion))
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[ORDER STORE] Lookup failed - Error: {e}")
            raise StoreUnavailable("Order store is unavailable") from e
        record = result.scalar_one_or_none()
        return self._to_domain(record) if record else None

    @staticmethod
    def _to_domain(record: SubmittedOrderRecord) -> SubmittedOrder:
        return SubmittedOrder(
            id=record.id,
            session_id=record.session_id,
            draft_id=record.draft_id,
            owner=record.owner,
            items=[OrderLineItem.model_validate(item) for item in record.items],
            subtotal=record.subtotal,
            tax=record.tax,
            total=record.total,
            summary=record.summary,
            submitted_at=record.submitted_at,
        )
