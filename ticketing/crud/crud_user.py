# ticketing/crud/crud_user.py
import logging
from typing import Optional

from pydantic import SecretStr
from sqlalchemy.orm import Session

from .base import CRUDBase
from ticketing.core.security import hash_password, verify_password
from ticketing.models.user import User
from ticketing.schemas.user import UserCreate, UserProfileUpdate

logger = logging.getLogger(__name__)


class CRUDUser(CRUDBase[User, UserCreate, UserProfileUpdate]):
    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(self.model).filter(self.model.email == email.lower()).first()

    def create(self, db: Session, *, obj_in: UserCreate) -> User:
        """Creates a user, storing only the bcrypt hash of the password."""
        db_obj = self.model(
            name=obj_in.name,
            email=obj_in.email.lower(),
            hashed_password=hash_password(plain_password=obj_in.password),
            role=obj_in.role.value,
            phone=obj_in.phone,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Created user {db_obj.id} with role {db_obj.role}")
        return db_obj

    def authenticate(
        self, db: Session, *, email: str, password: SecretStr
    ) -> Optional[User]:
        """Returns the user when the email exists and the password matches."""
        user = self.get_by_email(db, email=email)
        if not user:
            return None
        if not verify_password(
            plain_password=password, hashed_password=user.hashed_password
        ):
            return None
        return user

    def set_password(self, db: Session, *, db_obj: User, password: SecretStr) -> User:
        db_obj.hashed_password = hash_password(plain_password=password)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj


user = CRUDUser(User)
