# ticketing/api/v1/endpoints/auth.py
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ticketing.api import deps
from ticketing.core.exceptions import ConflictError, ForbiddenError, UnauthorizedError
from ticketing.core.security import create_access_token
from ticketing.crud import crud_user
from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.user import (
    AuthResponse,
    User as UserSchema,
    UserCreate,
    UserLogin,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _auth_response(user: User) -> dict:
    return {
        "user": user,
        "access_token": create_access_token(user_id=user.id, role=user.role),
        "token_type": "bearer",
    }


@router.post(
    "/auth/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    """Creates an account and returns it with a bearer token."""
    if crud_user.user.get_by_email(db, email=user_in.email):
        raise ConflictError(
            "An account with this email already exists", error_code="EMAIL_TAKEN"
        )
    user = crud_user.user.create(db, obj_in=user_in)
    return _auth_response(user)


@router.post("/auth/login", response_model=AuthResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Exchanges email and password for a bearer token.

    Unknown emails and wrong passwords get the same 401. If a role is sent it
    must match the stored one; login never creates accounts or changes roles.
    """
    user = crud_user.user.authenticate(
        db, email=credentials.email, password=credentials.password
    )
    if user is None:
        logger.info("Failed login attempt", extra={"email": credentials.email})
        raise UnauthorizedError("Invalid email or password")
    if not user.is_active:
        raise ForbiddenError("Account is disabled")
    if credentials.role is not None and credentials.role.value != user.role:
        raise ForbiddenError(f"This account is not registered as {credentials.role.value}")
    return _auth_response(user)


@router.get("/auth/me", response_model=UserSchema)
def read_current_user(current_user: User = Depends(deps.get_current_user)):
    return current_user
