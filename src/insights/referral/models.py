"""Referral code and promo link database models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import declared_attr, relationship

from insights.storage.models import Base


class AttributionCodeMixin:
    """Columns shared by every shareable attribution code.

    Codes are short uppercase tokens put into marketing links. Clicks only
    ever go up.
    """

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)

    @declared_attr
    def created_by_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Statistics
    clicks = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @declared_attr
    def created_by(cls):
        return relationship("User", lazy="joined")

    def __repr__(self):
        return f"<{type(self).__name__}(code={self.code}, clicks={self.clicks})>"


class ReferralCode(AttributionCodeMixin, Base):
    """Admin-created referral code."""
    __tablename__ = "referral_codes"


class PromoLink(AttributionCodeMixin, Base):
    """Campaign promo link. Same shape as a referral code, own namespace."""
    __tablename__ = "promo_links"
