"""Request dependencies: database sessions and the calling principal.

Authentication happens upstream; the gateway forwards the authenticated
principal as headers:

    X-User-Id           login user identifier
    X-Organization-Id   organization the session is scoped to
    X-Role              ADMIN, TREASURER or MEMBER
"""

from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Header, HTTPException, Query, status

from treasury.services.errors import ForbiddenError


class Role(str, Enum):
    """Organization-scoped role of the principal."""

    ADMIN = "ADMIN"
    TREASURER = "TREASURER"
    MEMBER = "MEMBER"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""

    user_id: str
    organization_id: str
    role: Role

    @property
    def can_manage_ledger(self) -> bool:
        return self.role in (Role.ADMIN, Role.TREASURER)


async def get_principal(
    x_user_id: str | None = Header(None),
    x_organization_id: str | None = Header(None),
    x_role: str | None = Header(None),
) -> Principal:
    """Build the principal from forwarded headers.

    Raises:
        HTTPException: 401 if a header is missing or the role is unknown
    """
    if not x_user_id or not x_organization_id or not x_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing principal headers",
        )
    try:
        role = Role(x_role.upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role {x_role!r}",
        ) from None
    return Principal(user_id=x_user_id, organization_id=x_organization_id, role=role)


async def get_organization_id(
    principal: Principal = Depends(get_principal),
    organization_id: str | None = Query(None),
) -> str:
    """Organization of the request; must match the principal's scope."""
    if organization_id is not None and organization_id != principal.organization_id:
        raise ForbiddenError("Access denied to organization", "organization_id")
    return principal.organization_id


async def require_manager(principal: Principal = Depends(get_principal)) -> Principal:
    """Principal allowed to mutate the ledger (ADMIN or TREASURER)."""
    if not principal.can_manage_ledger:
        raise ForbiddenError(f"Role {principal.role.value} cannot modify the ledger")
    return principal


__all__ = ["Role", "Principal", "get_principal", "get_organization_id", "require_manager"]
