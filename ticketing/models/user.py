# ticketing/models/user.py
import uuid

from sqlalchemy import Boolean, Column, Enum, String, text

from ticketing.db.base_class import Base
from ticketing.db.types import UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(
        String, primary_key=True, default=lambda: f"usr_{uuid.uuid4().hex[:12]}"
    )
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        Enum("user", "organizer", name="user_role_enum"),
        nullable=False,
        server_default="user",
    )
    phone = Column(String(30), nullable=True)
    profile_picture = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, server_default=text("true"))
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
