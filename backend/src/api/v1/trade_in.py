"""
Customer trade-in API endpoints.

Order submission, tracking, answers to revised offers and cancellation.
Customers are identified by the email of the order's customer of record;
a mismatch is reported as not found.
"""

from fastapi import APIRouter, Request, status

from src.api.deps import DatabaseSession
from src.core.logging import get_logger
from src.core.rate_limit import trade_in_rate_limit
from src.schemas.common import DataResponse
from src.schemas.trade_in import (
    CancelOrderRequest,
    OfferResponseRequest,
    OrderSummaryResponse,
    TrackOrderRequest,
    TradeInSubmitRequest,
)
from src.services.orders.service import TradeInOrderService

logger = get_logger(__name__)

router = APIRouter(prefix="/trade-in", tags=["trade-in"])


@router.post(
    "/submit",
    response_model=DataResponse[OrderSummaryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Submit trade-in order",
    description="Create a PENDING order priced from the catalog; a client quoted amount is advisory",
)
@trade_in_rate_limit
async def submit_trade_in(
    request: Request,
    payload: TradeInSubmitRequest,
    db: DatabaseSession,
) -> DataResponse[OrderSummaryResponse]:
    logger.info(
        "Submitting trade-in order",
        device_model_id=str(payload.device_model_id),
        storage_option_id=str(payload.storage_option_id),
        condition_id=str(payload.condition_id),
    )

    summary = await TradeInOrderService(db).submit_order(payload)
    return DataResponse(data=OrderSummaryResponse(**summary))


@router.post(
    "/track",
    response_model=DataResponse[OrderSummaryResponse],
    summary="Track trade-in order",
)
@trade_in_rate_limit
async def track_trade_in(
    request: Request,
    payload: TrackOrderRequest,
    db: DatabaseSession,
) -> DataResponse[OrderSummaryResponse]:
    summary = await TradeInOrderService(db).track_order(payload.email, payload.order_number)
    return DataResponse(data=OrderSummaryResponse(**summary))


@router.post(
    "/respond",
    response_model=DataResponse[OrderSummaryResponse],
    summary="Answer a revised offer",
    description="Accept (back to PROCESSING) or decline (REJECTED) an order awaiting approval",
)
@trade_in_rate_limit
async def respond_to_offer(
    request: Request,
    payload: OfferResponseRequest,
    db: DatabaseSession,
) -> DataResponse[OrderSummaryResponse]:
    logger.info(
        "Customer answering revised offer",
        order_id=str(payload.order_id),
        decision=payload.response.value,
    )

    summary = await TradeInOrderService(db).respond_to_offer(
        order_id=payload.order_id,
        email=payload.email,
        decision=payload.response,
        notes=payload.notes,
    )
    return DataResponse(data=OrderSummaryResponse(**summary))


@router.post(
    "/cancel",
    response_model=DataResponse[OrderSummaryResponse],
    summary="Cancel trade-in order",
)
@trade_in_rate_limit
async def cancel_trade_in(
    request: Request,
    payload: CancelOrderRequest,
    db: DatabaseSession,
) -> DataResponse[OrderSummaryResponse]:
    logger.info("Customer cancelling order", order_id=str(payload.order_id))

    summary = await TradeInOrderService(db).cancel_by_customer(
        order_id=payload.order_id,
        email=payload.email,
        notes=payload.notes,
    )
    return DataResponse(data=OrderSummaryResponse(**summary))
