from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from edubro.core.errors import AuthenticationError, PermissionDeniedError
from edubro.services.auth import user_from_token
from edubro.store.db import get_db
from edubro.store.models import User

__all__ = ["get_db", "get_current_user", "require_role", "bearer_token"]


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    """
    מחלץ את הטוקן מ-Authorization: Bearer <token>.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header")
    return token.strip()


def get_current_user(
    token: Optional[str] = Depends(bearer_token),
    db: Session = Depends(get_db),
) -> User:
    return user_from_token(db, token)


def require_role(*roles: str) -> Callable[..., User]:
    """
    Dependency factory: מאפשר גישה רק לתפקידים שנשלחו.
    """
    allowed = set(roles)

    def _dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise PermissionDeniedError(
                f"This action requires role: {', '.join(sorted(allowed))}"
            )
        return user

    return _dependency
