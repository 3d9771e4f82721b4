"""
Sample catalog and staff allow-list loader.

Loads the reference catalog (categories, brands, condition levels and device
models with their storage price schedules) and registers the configured
admin emails as ADMIN staff. Existing rows, matched by name or email, are
left untouched, so the loader can run on every deployment.

Usage:
    python -m src.database.seed
"""

import asyncio
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.logging import configure_logging, get_logger, log_performance
from src.database.connection import close_database_connections, get_session
from src.database.models.catalog import (
    Brand,
    Category,
    ConditionTier,
    DeviceCondition,
    DeviceModel,
    StorageOption,
)
from src.database.models.staff import StaffMember, StaffRole

logger = get_logger(__name__)

CATEGORIES = [
    {"name": "Smartphone", "description": "Mobile phones and smartphones", "icon": "smartphone"},
    {"name": "Tablet", "description": "Tablets and iPads", "icon": "tablet"},
    {"name": "Laptop", "description": "Laptops and notebooks", "icon": "laptop"},
    {"name": "Smartwatch", "description": "Smartwatches and wearables", "icon": "watch"},
]

BRANDS = [
    {"name": "Apple", "logo_url": "/logos/apple.png"},
    {"name": "Samsung", "logo_url": "/logos/samsung.png"},
    {"name": "Google", "logo_url": "/logos/google.png"},
    {"name": "Microsoft", "logo_url": "/logos/microsoft.png"},
]

CONDITIONS = [
    {
        "name": "Excellent",
        "tier": ConditionTier.EXCELLENT,
        "description": "Like new condition, no scratches or damage",
    },
    {
        "name": "Good",
        "tier": ConditionTier.GOOD,
        "description": "Minor wear, fully functional",
    },
    {
        "name": "Fair",
        "tier": ConditionTier.FAIR,
        "description": "Some wear and tear, still functional",
    },
    {
        "name": "Poor",
        "tier": ConditionTier.POOR,
        "description": "Significant damage but repairable",
    },
]

# (storage, excellent, good, fair, poor)
DEVICE_MODELS = [
    {
        "name": "iPhone 15 Pro",
        "category": "Smartphone",
        "brand": "Apple",
        "model_number": "A3102",
        "release_year": 2023,
        "display_order": 1,
        "storage": [
            ("128GB", "1200.00", "1080.00", "960.00", "840.00"),
            ("256GB", "1350.00", "1215.00", "1080.00", "945.00"),
            ("512GB", "1500.00", "1350.00", "1200.00", "1050.00"),
            ("1TB", "1650.00", "1485.00", "1320.00", "1155.00"),
        ],
    },
    {
        "name": "Samsung Galaxy S24",
        "category": "Smartphone",
        "brand": "Samsung",
        "model_number": "SM-S921",
        "release_year": 2024,
        "display_order": 2,
        "storage": [
            ("128GB", "1100.00", "990.00", "880.00", "770.00"),
            ("256GB", "1250.00", "1125.00", "1000.00", "875.00"),
            ("512GB", "1400.00", "1260.00", "1120.00", "980.00"),
        ],
    },
    {
        "name": 'iPad Pro 12.9"',
        "category": "Tablet",
        "brand": "Apple",
        "model_number": "A2435",
        "release_year": 2022,
        "display_order": 1,
        "storage": [
            ("128GB", "1200.00", "1080.00", "960.00", "840.00"),
            ("256GB", "1350.00", "1215.00", "1080.00", "945.00"),
            ("512GB", "1500.00", "1350.00", "1200.00", "1050.00"),
            ("1TB", "1650.00", "1485.00", "1320.00", "1155.00"),
            ("2TB", "1800.00", "1620.00", "1440.00", "1260.00"),
        ],
    },
    {
        "name": "MacBook Air M2",
        "category": "Laptop",
        "brand": "Apple",
        "model_number": "A2681",
        "release_year": 2022,
        "display_order": 1,
        "storage": [
            ("256GB", "1500.00", "1350.00", "1200.00", "1050.00"),
            ("512GB", "1700.00", "1530.00", "1360.00", "1190.00"),
            ("1TB", "1900.00", "1710.00", "1520.00", "1330.00"),
            ("2TB", "2100.00", "1890.00", "1680.00", "1470.00"),
        ],
    },
    {
        "name": "Apple Watch Series 9",
        "category": "Smartwatch",
        "brand": "Apple",
        "model_number": "A2972",
        "release_year": 2023,
        "display_order": 1,
        "storage": [
            ("41mm", "400.00", "360.00", "320.00", "280.00"),
            ("45mm", "450.00", "405.00", "360.00", "315.00"),
        ],
    },
]


async def _existing_by_name(session: AsyncSession, model: Any) -> dict[str, Any]:
    result = await session.execute(select(model))
    return {row.name: row for row in result.scalars().all()}


async def seed_catalog(session: AsyncSession) -> dict[str, int]:
    """
    Insert the sample catalog rows that do not exist yet.

    Args:
        session: Async session; the caller commits

    Returns:
        Number of rows created per entity
    """
    created = {"categories": 0, "brands": 0, "conditions": 0, "models": 0}

    categories = await _existing_by_name(session, Category)
    for order, data in enumerate(CATEGORIES, start=1):
        if data["name"] not in categories:
            categories[data["name"]] = Category(display_order=order, **data)
            session.add(categories[data["name"]])
            created["categories"] += 1

    brands = await _existing_by_name(session, Brand)
    for order, data in enumerate(BRANDS, start=1):
        if data["name"] not in brands:
            brands[data["name"]] = Brand(display_order=order, **data)
            session.add(brands[data["name"]])
            created["brands"] += 1

    conditions = await _existing_by_name(session, DeviceCondition)
    for order, data in enumerate(CONDITIONS, start=1):
        if data["name"] not in conditions:
            session.add(DeviceCondition(display_order=order, **data))
            created["conditions"] += 1

    await session.flush()

    models = await _existing_by_name(session, DeviceModel)
    for data in DEVICE_MODELS:
        if data["name"] in models:
            continue
        model = DeviceModel(
            name=data["name"],
            category_id=categories[data["category"]].id,
            brand_id=brands[data["brand"]].id,
            model_number=data["model_number"],
            release_year=data["release_year"],
            display_order=data["display_order"],
            created_by="system",
            updated_by="system",
        )
        model.storage_options = [
            StorageOption(
                storage=storage,
                excellent_price=Decimal(excellent),
                good_price=Decimal(good),
                fair_price=Decimal(fair),
                poor_price=Decimal(poor),
                display_order=position,
            )
            for position, (storage, excellent, good, fair, poor) in enumerate(data["storage"], start=1)
        ]
        session.add(model)
        created["models"] += 1

    await session.flush()
    logger.info("Sample catalog seeded", **created)
    return created


async def seed_staff(
    session: AsyncSession,
    emails: Iterable[str],
    role: StaffRole = StaffRole.ADMIN,
) -> int:
    """Register allow-list entries for emails that are not staff yet."""
    result = await session.execute(select(StaffMember.email))
    existing = set(result.scalars().all())

    count = 0
    for email in emails:
        normalized = email.strip().lower()
        if not normalized or normalized in existing:
            continue
        session.add(
            StaffMember(
                email=normalized,
                full_name=normalized.split("@")[0],
                role=role,
            )
        )
        existing.add(normalized)
        count += 1

    await session.flush()
    logger.info("Staff allow-list seeded", created=count, role=role.value)
    return count


async def run_seed() -> None:
    settings = get_settings()
    with log_performance(logger, "database_seed"):
        async with get_session() as session:
            await seed_catalog(session)
            await seed_staff(session, settings.admin_emails)
    await close_database_connections()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(run_seed())
