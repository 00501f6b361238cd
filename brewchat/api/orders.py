"""Order approval and history API endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from brewchat.api.schemas import CamelModel, OrderLineResponse, SubmittedOrderResponse
from brewchat.core.dependencies import get_finalizer, get_order_store, get_principal
from brewchat.services.ordering.finalization import OrderFinalizer
from brewchat.services.persistence.orders import SubmittedOrderStore

router = APIRouter()
logger = logging.getLogger(__name__)


class ApproveRequest(CamelModel):
    session_id: str


@router.post("/api/orders/approve", response_model=SubmittedOrderResponse, response_model_by_alias=True)
async def approve_order(
    approve_request: ApproveRequest,
    principal: str = Depends(get_principal),
    finalizer: OrderFinalizer = Depends(get_finalizer),
):
    """Submit the session's confirmed draft."""
    logger.info(
        f"[ORDERS] Approval requested - Session: {approve_request.session_id}, Principal: {principal}"
    )
    confirmation = await finalizer.approve(approve_request.session_id, principal)
    return SubmittedOrderResponse(
        order_id=confirmation.order_id,
        session_id=confirmation.session_id,
        summary=confirmation.summary,
        submitted_at=confirmation.submitted_at,
        items=[OrderLineResponse.from_line(line) for line in confirmation.items],
        total=confirmation.total,
    )


@router.get(
    "/api/orders/history",
    response_model=List[SubmittedOrderResponse],
    response_model_by_alias=True,
)
async def get_order_history(
    limit: int = Query(20, ge=1, le=100),
    principal: str = Depends(get_principal),
    order_store: SubmittedOrderStore = Depends(get_order_store),
):
    """Get the caller's submitted orders, newest first."""
    orders = await order_store.list_for_owner(principal, limit=limit)
    logger.info(f"[ORDERS HISTORY] Found {len(orders)} orders - Principal: {principal}")
    return [
        SubmittedOrderResponse(
            order_id=order.id,
            session_id=order.session_id,
            summary=order.summary,
            submitted_at=order.submitted_at,
            items=[OrderLineResponse.from_line(line) for line in order.items],
            total=order.total,
        )
        for order in orders
    ]
