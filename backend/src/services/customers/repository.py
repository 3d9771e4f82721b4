"""
Customer data access repository.

Customers are keyed by lower-cased email and upserted on order submission.
"""

from typing import Any, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.exceptions import ConflictError, TradeInError
from src.core.logging import get_logger
from src.database.models.customer import Customer

logger = get_logger(__name__)

# Fields refreshed from the latest submission
CONTACT_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "address_line1",
    "city",
    "province",
    "postal_code",
)


class CustomerRepositoryError(TradeInError):
    """Raised when a customer query or write fails."""

    pass


class CustomerConflictError(ConflictError):
    """Raised when a concurrent submission created the same customer first."""

    pass


class CustomerRepository:
    """Repository for customer data access operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[Customer]:
        try:
            result = await self.session.execute(
                select(Customer).where(Customer.email == email.strip().lower())
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch customer", error=str(e))
            raise CustomerRepositoryError("Failed to fetch customer") from e

    async def upsert(self, email: str, contact: dict[str, Any]) -> Customer:
        """
        Create the customer or refresh its contact fields.

        Args:
            email: Customer email, matched case-insensitively
            contact: Values for CONTACT_FIELDS; missing keys are left unchanged

        Returns:
            The created or updated customer

        Raises:
            CustomerConflictError: If the email was inserted concurrently
            CustomerRepositoryError: If the write fails
        """
        normalized = email.strip().lower()
        values = {k: v for k, v in contact.items() if k in CONTACT_FIELDS and v is not None}

        customer = await self.get_by_email(normalized)
        created = customer is None
        if customer is None:
            customer = Customer(email=normalized, **values)
            self.session.add(customer)
        else:
            for field, value in values.items():
                setattr(customer, field, value)

        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning("Customer upsert raced with another submission")
            raise CustomerConflictError("Customer already exists") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to upsert customer", error=str(e))
            raise CustomerRepositoryError("Failed to save customer") from e

        logger.debug(
            "Customer upserted",
            customer_id=str(customer.id),
            created=created,
        )
        return customer

    async def list_customers(
        self,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[Customer], int]:
        """
        List customers with their orders, newest customers first.

        Args:
            search: Case-insensitive substring of first name, last name or email
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (customers, total_count)
        """
        conditions = []
        if search:
            pattern = f"%{search.strip().lower()}%"
            conditions.append(
                or_(
                    func.lower(Customer.first_name).like(pattern),
                    func.lower(Customer.last_name).like(pattern),
                    Customer.email.like(pattern),
                )
            )

        try:
            stmt = (
                select(Customer)
                .where(*conditions)
                .options(selectinload(Customer.orders))
                .order_by(Customer.created_at.desc(), Customer.email)
                .offset(skip)
                .limit(limit)
            )
            count_stmt = select(func.count()).select_from(Customer).where(*conditions)

            result = await self.session.execute(stmt)
            count_result = await self.session.execute(count_stmt)
            return result.scalars().all(), count_result.scalar_one()
        except SQLAlchemyError as e:
            logger.error("Failed to list customers", error=str(e))
            raise CustomerRepositoryError("Failed to list customers") from e
