"""Referral code and promo link endpoints (admin)."""

from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from insights.auth.middleware import require_admin
from insights.auth.models import User
from insights.logging_config import get_logger
from insights.referral.models import AttributionCodeMixin
from insights.referral.service import promo_registry, referral_registry

logger = get_logger(__name__)

router = APIRouter(prefix="/dashboard", tags=["referral"])


# ==================== MODELS ====================


class CreateCodeRequest(BaseModel):
    """Request to create a referral code or promo link."""
    description: str | None = None


def serialize_code(record: AttributionCodeMixin) -> dict[str, Any]:
    creator = record.created_by
    return {
        "id": record.id,
        "code": record.code,
        "description": record.description,
        "clicks": record.clicks or 0,
        "createdAt": record.created_at.isoformat() if record.created_at else None,
        "createdBy": {
            "id": creator.id,
            "name": creator.name,
            "email": creator.email,
        } if creator else None,
    }


# ==================== REFERRALS ====================


@router.get("/referrals")
async def list_referrals(admin: User = Depends(require_admin)):
    """List referral codes, newest first."""
    return {"referrals": [serialize_code(r) for r in referral_registry.list()]}


@router.post("/referrals", status_code=status.HTTP_201_CREATED)
async def create_referral(
    body: CreateCodeRequest | None = None,
    admin: User = Depends(require_admin),
):
    """Create a referral code with a generated value."""
    referral = referral_registry.create(
        description=body.description if body else None,
        creator_id=admin.id,
    )
    return {"referral": serialize_code(referral)}


# ==================== PROMO LINKS ====================


@router.get("/promo-links")
async def list_promo_links(admin: User = Depends(require_admin)):
    """List promo links, newest first."""
    return {"promoLinks": [serialize_code(p) for p in promo_registry.list()]}


@router.post("/promo-links", status_code=status.HTTP_201_CREATED)
async def create_promo_link(
    body: CreateCodeRequest | None = None,
    admin: User = Depends(require_admin),
):
    """Create a promo link code."""
    promo_link = promo_registry.create(
        description=body.description if body else None,
        creator_id=admin.id,
    )
    return {"promoLink": serialize_code(promo_link)}
