"""
Public device catalog API endpoints.

Read-only browsing of the active catalog used by the quote widget.
"""

from uuid import UUID

from fastapi import APIRouter, Request

from src.api.deps import DatabaseSession
from src.core.logging import get_logger
from src.core.rate_limit import devices_rate_limit
from src.schemas.catalog import (
    BrandResponse,
    CatalogResponse,
    CategoryResponse,
    ConditionResponse,
    DeviceModelResponse,
)
from src.schemas.common import DataResponse
from src.services.catalog.service import CatalogService

logger = get_logger(__name__)

router = APIRouter(prefix="/devices", tags=["devices"])


@router.get(
    "/catalog",
    response_model=DataResponse[CatalogResponse],
    summary="Get device catalog",
    description="Active categories, brands, conditions and device models with their storage prices",
)
@devices_rate_limit
async def get_catalog(request: Request, db: DatabaseSession) -> DataResponse[CatalogResponse]:
    catalog = await CatalogService(db).get_public_catalog()

    return DataResponse(
        data=CatalogResponse(
            categories=[CategoryResponse.model_validate(c) for c in catalog["categories"]],
            brands=[BrandResponse.model_validate(b) for b in catalog["brands"]],
            conditions=[ConditionResponse.model_validate(c) for c in catalog["conditions"]],
            models=[
                DeviceModelResponse.from_device_model(m, active_options_only=True)
                for m in catalog["models"]
            ],
        )
    )


@router.get(
    "/conditions",
    response_model=DataResponse[list[ConditionResponse]],
    summary="List device conditions",
)
@devices_rate_limit
async def list_conditions(
    request: Request, db: DatabaseSession
) -> DataResponse[list[ConditionResponse]]:
    conditions = await CatalogService(db).list_public_conditions()
    return DataResponse(data=[ConditionResponse.model_validate(c) for c in conditions])


@router.get(
    "/models/{model_id}",
    response_model=DataResponse[DeviceModelResponse],
    summary="Get device model",
    description="One active device model with its active storage options",
)
@devices_rate_limit
async def get_device_model(
    request: Request, model_id: UUID, db: DatabaseSession
) -> DataResponse[DeviceModelResponse]:
    model = await CatalogService(db).get_public_model(model_id)
    return DataResponse(data=DeviceModelResponse.from_device_model(model, active_options_only=True))
