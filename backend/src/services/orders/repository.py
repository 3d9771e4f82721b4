"""
Trade-in order data access repository.

This module implements the OrderRepository class providing async methods for
creating trade-in orders, loading them with their status history, filtering
and paginating staff listings, and deleting an order together with its
history. Database failures are logged and re-raised as repository errors.
"""

import uuid
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.exceptions import ConflictError, NotFoundError, TradeInError
from src.core.logging import get_logger
from src.database.models.trade_in import OrderStatusHistory, TradeInOrder
from src.services.orders.enums import OrderStatus

logger = get_logger(__name__)


class OrderRepositoryError(TradeInError):
    """Base exception for order repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message, **context)


class OrderNotFoundError(NotFoundError):
    """Raised when order is not found."""

    def __init__(self, message: str = "Order not found", **context: Any):
        super().__init__(message, **context)


class OrderNumberConflictError(ConflictError):
    """Raised when a generated order number is already taken."""

    pass


class OrderCreationError(OrderRepositoryError):
    """Raised when order creation fails."""

    pass


class OrderUpdateError(OrderRepositoryError):
    """Raised when order update fails."""

    pass


class ConcurrentOrderUpdateError(ConflictError):
    """Raised when another update to the same order was committed first."""

    pass


class OrderRepository:
    """
    Repository for trade-in order data access operations.

    Writes flush only; the request-scoped session commits or rolls back
    the whole unit of work.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize order repository.

        Args:
            session: Async database session
        """
        self.session = session

    def _order_query(self):
        return select(TradeInOrder).options(
            selectinload(TradeInOrder.status_history),
            selectinload(TradeInOrder.customer),
            selectinload(TradeInOrder.device_model),
            selectinload(TradeInOrder.condition),
            selectinload(TradeInOrder.storage_option),
        )

    async def create_order(self, order: TradeInOrder) -> TradeInOrder:
        """
        Insert a new order and its initial history entry.

        Args:
            order: Transient order with its history already appended

        Returns:
            The persisted order

        Raises:
            OrderNumberConflictError: If the order number is already taken
            OrderCreationError: If the insert fails for another reason
        """
        try:
            self.session.add(order)
            await self.session.flush()

            logger.info(
                "Order created",
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(order.customer_id),
            )
            return order

        except IntegrityError as e:
            await self.session.rollback()
            if "order_number" in str(e.orig):
                logger.warning(
                    "Order number collision",
                    order_number=order.order_number,
                )
                raise OrderNumberConflictError(
                    "Order number already exists",
                    order_number=order.order_number,
                ) from e
            logger.error(
                "Order creation violated a constraint",
                order_number=order.order_number,
                error=str(e.orig),
            )
            raise OrderCreationError(
                "Failed to create order",
                order_number=order.order_number,
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Failed to create order",
                order_number=order.order_number,
                error=str(e),
            )
            raise OrderCreationError(
                "Failed to create order",
                order_number=order.order_number,
            ) from e

    async def get_order_by_id(self, order_id: uuid.UUID) -> Optional[TradeInOrder]:
        """
        Get order by ID with customer, catalog references and history.

        Raises:
            OrderRepositoryError: If query fails
        """
        try:
            stmt = (
                self._order_query()
                .where(TradeInOrder.id == order_id)
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch order", order_id=str(order_id), error=str(e))
            raise OrderRepositoryError(
                "Failed to fetch order",
                order_id=str(order_id),
            ) from e

    async def get_order_by_number(self, order_number: str) -> Optional[TradeInOrder]:
        try:
            stmt = self._order_query().where(TradeInOrder.order_number == order_number)
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch order by number",
                order_number=order_number,
                error=str(e),
            )
            raise OrderRepositoryError(
                "Failed to fetch order",
                order_number=order_number,
            ) from e

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        submitted_from: Optional[datetime] = None,
        submitted_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[TradeInOrder], int]:
        """
        List orders newest first with optional filters.

        Args:
            status: Optional status filter
            submitted_from: Inclusive lower bound on submission time
            submitted_to: Inclusive upper bound on submission time
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (orders, total_count)

        Raises:
            OrderRepositoryError: If query fails
        """
        try:
            conditions = []
            if status is not None:
                conditions.append(TradeInOrder.status == status)
            if submitted_from is not None:
                conditions.append(TradeInOrder.submitted_at >= submitted_from)
            if submitted_to is not None:
                conditions.append(TradeInOrder.submitted_at <= submitted_to)

            stmt = (
                self._order_query()
                .where(*conditions)
                .order_by(TradeInOrder.submitted_at.desc(), TradeInOrder.order_number.desc())
                .offset(skip)
                .limit(limit)
            )
            count_stmt = (
                select(func.count())
                .select_from(TradeInOrder)
                .where(*conditions)
            )

            result = await self.session.execute(stmt)
            count_result = await self.session.execute(count_stmt)

            orders = result.scalars().all()
            total_count = count_result.scalar_one()

            logger.debug(
                "Orders fetched",
                status=status.value if status else None,
                count=len(orders),
                total=total_count,
            )
            return orders, total_count

        except SQLAlchemyError as e:
            logger.error("Failed to list orders", error=str(e))
            raise OrderRepositoryError("Failed to list orders") from e

    async def save(self, order: TradeInOrder) -> TradeInOrder:
        """
        Flush changes to an existing order and any appended history.

        Raises:
            ConcurrentOrderUpdateError: If a concurrent update took the same
                history sequence number
            OrderUpdateError: If the update fails
        """
        order_id = str(order.id)
        try:
            await self.session.flush()
            return order
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(
                "Concurrent order update rejected",
                order_id=order_id,
                error=str(e.orig),
            )
            raise ConcurrentOrderUpdateError(
                "Order was modified concurrently, please retry",
                order_id=order_id,
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Failed to update order",
                order_id=order_id,
                error=str(e),
            )
            raise OrderUpdateError(
                "Failed to update order",
                order_id=order_id,
            ) from e

    async def delete_order(self, order: TradeInOrder) -> None:
        """
        Delete an order, removing its status history first.

        Raises:
            OrderUpdateError: If either delete fails
        """
        order_id = order.id
        try:
            history_result = await self.session.execute(
                delete(OrderStatusHistory).where(OrderStatusHistory.order_id == order_id)
            )
            await self.session.execute(delete(TradeInOrder).where(TradeInOrder.id == order_id))
            self.session.expunge(order)

            logger.info(
                "Order deleted",
                order_id=str(order_id),
                history_rows=history_result.rowcount,
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to delete order", order_id=str(order_id), error=str(e))
            raise OrderUpdateError(
                "Failed to delete order",
                order_id=str(order_id),
            ) from e
