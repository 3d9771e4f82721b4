"""
Quote calculation API endpoint.
"""

from dataclasses import asdict

from fastapi import APIRouter, Request

from src.api.deps import DatabaseSession
from src.core.logging import get_logger
from src.core.rate_limit import quotes_rate_limit
from src.schemas.common import DataResponse
from src.schemas.quotes import QuoteRequest, QuoteResponse
from src.services.pricing.engine import QuoteEngine

logger = get_logger(__name__)

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post(
    "/calculate",
    response_model=DataResponse[QuoteResponse],
    summary="Calculate trade-in quote",
    description=(
        "Return the catalog price for a device model, storage label and condition. "
        "Fails with PRICING_NOT_CONFIGURED when no price is stored for the condition."
    ),
)
@quotes_rate_limit
async def calculate_quote(
    request: Request,
    payload: QuoteRequest,
    db: DatabaseSession,
) -> DataResponse[QuoteResponse]:
    logger.info(
        "Calculating quote",
        device_model_id=str(payload.device_model_id),
        storage=payload.storage,
        condition=payload.condition,
    )

    quote = await QuoteEngine(db).calculate_quote(
        device_model_id=payload.device_model_id,
        storage=payload.storage,
        condition=payload.condition,
    )
    return DataResponse(data=QuoteResponse(**asdict(quote)))
