"""
Staff catalog management API endpoints.

CRUD for categories, brands, conditions and device models with their
storage price schedules. Deletes require ADMIN.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from src.api.deps import AdminStaff, CurrentStaff, DatabaseSession
from src.core.logging import get_logger
from src.core.rate_limit import staff_rate_limit
from src.schemas.catalog import (
    BrandCreate,
    BrandResponse,
    BrandUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ConditionCreate,
    ConditionResponse,
    ConditionUpdate,
    DeviceModelCreate,
    DeviceModelDeleteResponse,
    DeviceModelResponse,
    DeviceModelUpdate,
)
from src.schemas.common import DataResponse
from src.services.catalog.service import CatalogService

logger = get_logger(__name__)

router = APIRouter(prefix="/staff", tags=["staff-catalog"])


# ============================================================================
# Categories
# ============================================================================


@router.get("/categories", response_model=DataResponse[list[CategoryResponse]])
@staff_rate_limit
async def list_categories(
    request: Request, staff: CurrentStaff, db: DatabaseSession
) -> DataResponse[list[CategoryResponse]]:
    categories = await CatalogService(db).list_categories()
    return DataResponse(data=[CategoryResponse.model_validate(c) for c in categories])


@router.post(
    "/categories",
    response_model=DataResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
)
@staff_rate_limit
async def create_category(
    request: Request, payload: CategoryCreate, staff: CurrentStaff, db: DatabaseSession
) -> DataResponse[CategoryResponse]:
    category = await CatalogService(db).create_category(payload)
    return DataResponse(data=CategoryResponse.model_validate(category))


@router.patch("/categories/{category_id}", response_model=DataResponse[CategoryResponse])
@staff_rate_limit
async def update_category(
    request: Request,
    category_id: UUID,
    payload: CategoryUpdate,
    staff: CurrentStaff,
    db: DatabaseSession,
) -> DataResponse[CategoryResponse]:
    category = await CatalogService(db).update_category(category_id, payload)
    return DataResponse(data=CategoryResponse.model_validate(category))


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
@staff_rate_limit
async def delete_category(
    request: Request, category_id: UUID, staff: AdminStaff, db: DatabaseSession
) -> None:
    await CatalogService(db).delete_category(category_id)
    logger.info("Category deleted by staff", category_id=str(category_id), staff=staff.email)


# ============================================================================
# Brands
# ============================================================================


@router.get("/brands", response_model=DataResponse[list[BrandResponse]])
@staff_rate_limit
async def list_brands(
    request: Request, staff: CurrentStaff, db: DatabaseSession
) -> DataResponse[list[BrandResponse]]:
    brands = await CatalogService(db).list_brands()
    return DataResponse(data=[BrandResponse.model_validate(b) for b in brands])


@router.post(
    "/brands",
    response_model=DataResponse[BrandResponse],
    status_code=status.HTTP_201_CREATED,
)
@staff_rate_limit
async def create_brand(
    request: Request, payload: BrandCreate, staff: CurrentStaff, db: DatabaseSession
) -> DataResponse[BrandResponse]:
    brand = await CatalogService(db).create_brand(payload)
    return DataResponse(data=BrandResponse.model_validate(brand))


@router.patch("/brands/{brand_id}", response_model=DataResponse[BrandResponse])
@staff_rate_limit
async def update_brand(
    request: Request,
    brand_id: UUID,
    payload: BrandUpdate,
    staff: CurrentStaff,
    db: DatabaseSession,
) -> DataResponse[BrandResponse]:
    brand = await CatalogService(db).update_brand(brand_id, payload)
    return DataResponse(data=BrandResponse.model_validate(brand))


@router.delete("/brands/{brand_id}", status_code=status.HTTP_204_NO_CONTENT)
@staff_rate_limit
async def delete_brand(
    request: Request, brand_id: UUID, staff: AdminStaff, db: DatabaseSession
) -> None:
    await CatalogService(db).delete_brand(brand_id)
    logger.info("Brand deleted by staff", brand_id=str(brand_id), staff=staff.email)


# ============================================================================
# Conditions
# ============================================================================


@router.get("/conditions", response_model=DataResponse[list[ConditionResponse]])
@staff_rate_limit
async def list_conditions(
    request: Request, staff: CurrentStaff, db: DatabaseSession
) -> DataResponse[list[ConditionResponse]]:
    conditions = await CatalogService(db).list_conditions()
    return DataResponse(data=[ConditionResponse.model_validate(c) for c in conditions])


@router.post(
    "/conditions",
    response_model=DataResponse[ConditionResponse],
    status_code=status.HTTP_201_CREATED,
)
@staff_rate_limit
async def create_condition(
    request: Request, payload: ConditionCreate, staff: CurrentStaff, db: DatabaseSession
) -> DataResponse[ConditionResponse]:
    condition = await CatalogService(db).create_condition(payload)
    return DataResponse(data=ConditionResponse.model_validate(condition))


@router.patch("/conditions/{condition_id}", response_model=DataResponse[ConditionResponse])
@staff_rate_limit
async def update_condition(
    request: Request,
    condition_id: UUID,
    payload: ConditionUpdate,
    staff: CurrentStaff,
    db: DatabaseSession,
) -> DataResponse[ConditionResponse]:
    condition = await CatalogService(db).update_condition(condition_id, payload)
    return DataResponse(data=ConditionResponse.model_validate(condition))


# ============================================================================
# Device models
# ============================================================================


@router.get("/models", response_model=DataResponse[list[DeviceModelResponse]])
@staff_rate_limit
async def list_models(
    request: Request,
    staff: CurrentStaff,
    db: DatabaseSession,
    category_id: Optional[UUID] = Query(None),
    brand_id: Optional[UUID] = Query(None),
) -> DataResponse[list[DeviceModelResponse]]:
    models = await CatalogService(db).list_models(category_id=category_id, brand_id=brand_id)
    return DataResponse(data=[DeviceModelResponse.from_device_model(m) for m in models])


@router.get("/models/{model_id}", response_model=DataResponse[DeviceModelResponse])
@staff_rate_limit
async def get_model(
    request: Request, model_id: UUID, staff: CurrentStaff, db: DatabaseSession
) -> DataResponse[DeviceModelResponse]:
    model = await CatalogService(db).get_model(model_id)
    return DataResponse(data=DeviceModelResponse.from_device_model(model))


@router.post(
    "/models",
    response_model=DataResponse[DeviceModelResponse],
    status_code=status.HTTP_201_CREATED,
)
@staff_rate_limit
async def create_model(
    request: Request, payload: DeviceModelCreate, staff: CurrentStaff, db: DatabaseSession
) -> DataResponse[DeviceModelResponse]:
    model = await CatalogService(db).create_model(payload, staff.email)
    return DataResponse(data=DeviceModelResponse.from_device_model(model))


@router.patch("/models/{model_id}", response_model=DataResponse[DeviceModelResponse])
@staff_rate_limit
async def update_model(
    request: Request,
    model_id: UUID,
    payload: DeviceModelUpdate,
    staff: CurrentStaff,
    db: DatabaseSession,
) -> DataResponse[DeviceModelResponse]:
    model = await CatalogService(db).update_model(model_id, payload, staff.email)
    return DataResponse(data=DeviceModelResponse.from_device_model(model))


@router.delete("/models/{model_id}", response_model=DataResponse[DeviceModelDeleteResponse])
@staff_rate_limit
async def delete_model(
    request: Request, model_id: UUID, staff: AdminStaff, db: DatabaseSession
) -> DataResponse[DeviceModelDeleteResponse]:
    result = await CatalogService(db).delete_model(model_id, staff.email)
    return DataResponse(data=DeviceModelDeleteResponse(**result))
