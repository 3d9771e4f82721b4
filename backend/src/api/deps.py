"""
FastAPI dependencies for database sessions and staff authorization.

Every ``staff/*`` route goes through ``require_staff_role``: bearer token,
identity resolution, allow-list and role check, then the identity is
attached to the request and to the logging context.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import get_logger, set_actor
from src.database.connection import get_db
from src.database.models.staff import StaffMember, StaffRole
from src.services.auth.service import StaffAuthService

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)

DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


def require_staff_role(*allowed_roles: StaffRole):
    """
    Create a dependency that authorizes staff with one of the given roles.

    Args:
        *allowed_roles: Accepted roles; any active staff member when empty

    Returns:
        Callable: Dependency resolving to the authorized StaffMember

    Example:
        @router.delete("/orders/{order_id}")
        async def delete_order(staff: AdminStaff):
            ...
    """

    async def staff_checker(
        request: Request,
        credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
        db: DatabaseSession,
    ) -> StaffMember:
        token = credentials.credentials if credentials is not None else None
        staff = await StaffAuthService(db).authenticate(token, allowed_roles or None)

        request.state.staff = staff
        set_actor(staff.email)

        logger.debug(
            "Staff authorized",
            staff_id=str(staff.id),
            role=staff.role.value,
            path=request.url.path,
        )
        return staff

    return staff_checker


get_current_staff = require_staff_role()
get_current_admin = require_staff_role(StaffRole.ADMIN)

CurrentStaff = Annotated[StaffMember, Depends(get_current_staff)]
AdminStaff = Annotated[StaffMember, Depends(get_current_admin)]
