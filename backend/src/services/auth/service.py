"""
Staff authorization service.

Identity comes from bearer tokens issued by the hosted identity provider;
this service verifies the token and resolves its email claim against the
StaffMember allow-list. It never stores or checks passwords.
"""

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AuthenticationError, PermissionDeniedError, TradeInError
from src.core.logging import get_logger
from src.core.security import TokenError, decode_token, get_token_email
from src.database.models.staff import StaffMember, StaffRole

logger = get_logger(__name__)


class StaffAuthService:
    """
    Resolve bearer tokens to active staff members.

    Attributes:
        session: Async database session used for allow-list lookups
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def authenticate(
        self,
        token: Optional[str],
        required_roles: Optional[Iterable[StaffRole]] = None,
    ) -> StaffMember:
        """
        Authenticate a bearer token and authorize the staff member.

        Args:
            token: Raw bearer token, or None when the header was missing
            required_roles: Roles accepted for the operation; any role when None

        Returns:
            The active StaffMember matching the token email

        Raises:
            AuthenticationError: Missing, malformed, expired or forged token
            PermissionDeniedError: Email not on the allow-list, inactive
                member or insufficient role
        """
        if not token:
            raise AuthenticationError("Missing bearer token")

        try:
            payload = decode_token(token)
            email = get_token_email(payload)
        except TokenError as e:
            logger.info("Bearer token rejected", reason=e.code)
            raise AuthenticationError("Invalid or expired token", reason=e.code) from e

        staff = await self.get_staff_by_email(email)
        if staff is None:
            logger.warning("Token identity is not on the staff allow-list", subject=payload.get("sub"))
            raise PermissionDeniedError("Staff access required")

        if not staff.is_active:
            logger.warning("Inactive staff member denied", staff_id=str(staff.id))
            raise PermissionDeniedError("Staff access required")

        roles = set(required_roles) if required_roles else None
        if roles is not None and staff.role not in roles:
            logger.warning(
                "Staff role insufficient",
                staff_id=str(staff.id),
                role=staff.role.value,
                required=sorted(r.value for r in roles),
            )
            raise PermissionDeniedError("Insufficient role for this operation")

        return staff

    async def get_staff_by_email(self, email: str) -> Optional[StaffMember]:
        try:
            result = await self.session.execute(
                select(StaffMember).where(StaffMember.email == email.strip().lower())
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to look up staff member", error=str(e))
            raise TradeInError("Failed to verify staff access") from e
