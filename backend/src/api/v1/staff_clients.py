"""
Staff client view API endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Query, Request

from src.api.deps import CurrentStaff, DatabaseSession
from src.core.rate_limit import staff_rate_limit
from src.schemas.common import PaginatedResponse, PaginationMeta
from src.schemas.staff import ClientResponse
from src.services.customers.service import CustomerService

router = APIRouter(prefix="/staff", tags=["staff"])


@router.get(
    "/clients",
    response_model=PaginatedResponse[ClientResponse],
    summary="List clients",
    description="Customers with their order counts and orders, optionally searched by name or email",
)
@staff_rate_limit
async def list_clients(
    request: Request,
    staff: CurrentStaff,
    db: DatabaseSession,
    search: Optional[str] = Query(None, max_length=100, description="Name or email fragment"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[ClientResponse]:
    clients, total = await CustomerService(db).list_clients(search=search, page=page, limit=limit)

    return PaginatedResponse(
        data=[ClientResponse.model_validate(client) for client in clients],
        pagination=PaginationMeta.build(page, limit, total),
    )
