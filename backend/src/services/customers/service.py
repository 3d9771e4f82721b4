"""
Customer service for submission upserts and the staff client view.
"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import get_logger
from src.database.models.customer import Customer
from src.services.customers.repository import CustomerRepository

logger = get_logger(__name__)


class CustomerService:
    """Customer operations shared by order intake and staff views."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = CustomerRepository(session)

    async def upsert_customer(self, email: str, contact: dict[str, Any]) -> Customer:
        return await self.repository.upsert(email, contact)

    async def list_clients(
        self,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        Paginated customers with order counts and order summaries.

        Returns:
            Tuple of (client dictionaries, total_count)
        """
        customers, total = await self.repository.list_customers(
            search=search,
            skip=(page - 1) * limit,
            limit=limit,
        )

        logger.debug("Clients listed", count=len(customers), total=total, search=search)
        return [self._format_client(customer) for customer in customers], total

    def _format_client(self, customer: Customer) -> dict[str, Any]:
        return {
            "id": customer.id,
            "email": customer.email,
            "first_name": customer.first_name,
            "last_name": customer.last_name,
            "full_name": customer.full_name,
            "phone": customer.phone,
            "address_line1": customer.address_line1,
            "city": customer.city,
            "province": customer.province,
            "postal_code": customer.postal_code,
            "created_at": customer.created_at,
            "order_count": len(customer.orders),
            "orders": [
                {
                    "id": order.id,
                    "order_number": order.order_number,
                    "status": order.status,
                    "quoted_amount": order.quoted_amount,
                    "final_amount": order.final_amount,
                    "submitted_at": order.submitted_at,
                }
                for order in customer.orders
            ],
        }
