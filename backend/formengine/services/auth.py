"""Caller identity for the HTTP layer.

Authentication happens upstream. The gateway forwards the authenticated
user's id and role in headers; this module only reads them and enforces
role requirements on routes.
"""

from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import Optional

from fastapi import Depends, Header, HTTPException, status


class UserRole(str, PyEnum):
    """User roles in the platform."""
    ADMIN = "admin"
    AGENT = "agent"
    CLIENT = "client"
    
    def __str__(self) -> str:
        return self.value


@dataclass
class CurrentUser:
    id: str
    role: UserRole


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> CurrentUser:
    """Build the caller from gateway headers."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated user"
        )
    try:
        role = UserRole(x_user_role or UserRole.CLIENT.value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Unknown role: {x_user_role}"
        )
    return CurrentUser(id=x_user_id, role=role)


def require_role(*roles: UserRole):
    """Dependency factory that admits only the given roles."""
    async def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions"
            )
        return current_user
    return checker
