"""
Staff order management API endpoints.

Listing, inspection, updates and deletion of trade-in orders. All routes
require an authorized staff member; deletion requires ADMIN.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request

from src.api.deps import AdminStaff, CurrentStaff, DatabaseSession
from src.core.logging import get_logger
from src.core.rate_limit import staff_rate_limit
from src.schemas.common import DataResponse, PaginatedResponse, PaginationMeta
from src.schemas.staff import (
    OrderDeleteResponse,
    StaffIdentityResponse,
    StaffOrderResponse,
    StaffOrderUpdate,
)
from src.services.orders.enums import OrderStatus
from src.services.orders.service import TradeInOrderService

logger = get_logger(__name__)

router = APIRouter(prefix="/staff", tags=["staff"])


@router.get(
    "/me",
    response_model=DataResponse[StaffIdentityResponse],
    summary="Current staff identity",
)
@staff_rate_limit
async def get_me(request: Request, staff: CurrentStaff) -> DataResponse[StaffIdentityResponse]:
    return DataResponse(data=StaffIdentityResponse.model_validate(staff))


@router.get(
    "/orders",
    response_model=PaginatedResponse[StaffOrderResponse],
    summary="List trade-in orders",
    description="Newest first, filtered by status and submission window",
)
@staff_rate_limit
async def list_orders(
    request: Request,
    staff: CurrentStaff,
    db: DatabaseSession,
    status: Optional[OrderStatus] = Query(None, description="Filter by order status"),
    submitted_from: Optional[datetime] = Query(None, description="Submitted at or after"),
    submitted_to: Optional[datetime] = Query(None, description="Submitted at or before"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Page size"),
) -> PaginatedResponse[StaffOrderResponse]:
    orders, total = await TradeInOrderService(db).list_orders(
        status=status,
        submitted_from=submitted_from,
        submitted_to=submitted_to,
        page=page,
        limit=limit,
    )

    return PaginatedResponse(
        data=[StaffOrderResponse.model_validate(order) for order in orders],
        pagination=PaginationMeta.build(page, limit, total),
    )


@router.get(
    "/orders/{order_id}",
    response_model=DataResponse[StaffOrderResponse],
    summary="Get trade-in order",
)
@staff_rate_limit
async def get_order(
    request: Request,
    order_id: UUID,
    staff: CurrentStaff,
    db: DatabaseSession,
) -> DataResponse[StaffOrderResponse]:
    order = await TradeInOrderService(db).get_order(order_id)
    return DataResponse(data=StaffOrderResponse.model_validate(order))


@router.patch(
    "/orders/{order_id}",
    response_model=DataResponse[StaffOrderResponse],
    summary="Update trade-in order",
    description="Update status, final amount, notes, payment method or tracking number",
)
@staff_rate_limit
async def update_order(
    request: Request,
    order_id: UUID,
    payload: StaffOrderUpdate,
    staff: CurrentStaff,
    db: DatabaseSession,
) -> DataResponse[StaffOrderResponse]:
    logger.info(
        "Staff updating order",
        order_id=str(order_id),
        fields=sorted(payload.model_fields_set),
        target_status=payload.status.value if payload.status else None,
    )

    order = await TradeInOrderService(db).update_order(order_id, payload, staff.email)
    return DataResponse(data=StaffOrderResponse.model_validate(order))


@router.delete(
    "/orders/{order_id}",
    response_model=DataResponse[OrderDeleteResponse],
    summary="Delete trade-in order",
    description="Delete an order and its status history (ADMIN only)",
)
@staff_rate_limit
async def delete_order(
    request: Request,
    order_id: UUID,
    staff: AdminStaff,
    db: DatabaseSession,
) -> DataResponse[OrderDeleteResponse]:
    result = await TradeInOrderService(db).delete_order(order_id, staff.email)
    return DataResponse(data=OrderDeleteResponse(**result))
