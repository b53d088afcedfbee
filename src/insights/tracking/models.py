"""Visitor event log model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from insights.storage.models import Base


class AttributionSource(str, Enum):
    """Namespace of the code that brought a visitor."""
    REFERRAL = "referral"
    PROMO = "promo"


class VisitorEvent(Base):
    """One tracked page view. Append-only.

    ``attribution_code`` is stored by value so an event keeps its
    attribution even if the code row disappears.
    """
    __tablename__ = "visitor_events"

    id = Column(Integer, primary_key=True)

    # Null means anonymous visitor
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    page = Column(String(100), nullable=False, index=True)
    session_id = Column(String(255), nullable=True, index=True)

    # Provenance
    user_agent = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    referrer = Column(Text, nullable=True)

    # Attribution tag (both set or both null)
    attribution_code = Column(String(20), nullable=True)
    attribution_source = Column(SQLEnum(AttributionSource), nullable=True)

    is_authenticated = Column(Boolean, default=False, nullable=False)
    time_spent = Column(Float, default=0.0, nullable=False)  # seconds

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        Index("ix_visitor_events_page_created", "page", "created_at"),
        Index("ix_visitor_events_user_created", "user_id", "created_at"),
        Index("ix_visitor_events_attribution", "attribution_source", "attribution_code", "created_at"),
    )

    def __repr__(self):
        return f"<VisitorEvent(id={self.id}, page={self.page}, user={self.user_id})>"
