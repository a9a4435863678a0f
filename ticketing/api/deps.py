# ticketing/api/deps.py
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ticketing.core.config import settings
from ticketing.core.exceptions import ForbiddenError, UnauthorizedError
from ticketing.core.security import decode_access_token
from ticketing.crud import crud_user
from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.user import UserRole

# auto_error=False so a missing token goes through our own 401 response
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login", auto_error=False
)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolves the bearer token to an active user."""
    if not token:
        raise UnauthorizedError("Not authenticated")

    token_data = decode_access_token(token)

    user = crud_user.user.get(db, id=token_data.sub)
    if user is None or not user.is_active:
        raise UnauthorizedError("Could not validate credentials")
    return user


def require_role(role: UserRole):
    """Builds a dependency that admits only users holding `role`."""

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role.value:
            raise ForbiddenError(f"This action requires the {role.value} role")
        return current_user

    return checker


get_current_organizer = require_role(UserRole.organizer)
