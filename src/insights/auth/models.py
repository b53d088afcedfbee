"""User account model (owned by the auth service, read here)."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Integer, String

from insights.storage.models import Base


class UserRole(str, Enum):
    """Account roles."""
    STUDENT = "student"
    GRADUATE = "graduate"
    EMPLOYER = "employer"
    ADMIN = "admin"


# Roles that are expected to apply to opportunities
APPLICANT_ROLES = (UserRole.STUDENT, UserRole.GRADUATE)


class User(Base):
    """Platform user account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)

    # Identity
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
