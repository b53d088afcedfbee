"""Database models shared across modules.

Opportunities and applications are owned by the application module; this
service only reads them for dashboards and the encouragement flow.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class ApplicationStatus(str, Enum):
    """Closed set of application states."""
    PENDING_PAYMENT = "pending_payment"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"
    ACCEPTED = "accepted"


# Not finalized yet
PENDING_STATUSES = (
    ApplicationStatus.PENDING_PAYMENT,
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_REVIEW,
)
# Final outcome reached
COMPLETED_STATUSES = (
    ApplicationStatus.SHORTLISTED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.ACCEPTED,
)


class Opportunity(Base):
    """Published opportunity (internship, job, programme)."""

    __tablename__ = "opportunities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    applications: Mapped[list["Application"]] = relationship(
        "Application", back_populates="opportunity"
    )

    def __repr__(self) -> str:
        return f"<Opportunity(id={self.id}, title='{self.title}', active={self.is_active})>"


class Application(Base):
    """A user's application to an opportunity."""

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    opportunity_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("opportunities.id"), nullable=True, index=True
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus),
        default=ApplicationStatus.PENDING_PAYMENT,
        nullable=False,
        index=True,
    )

    # Payment / documents
    amount_paid: Mapped[float | None] = mapped_column(Float, nullable=True)
    resume_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cover_letter: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    opportunity: Mapped["Opportunity | None"] = relationship(
        "Opportunity", back_populates="applications"
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, user={self.user_id}, status={self.status})>"
