"""Visitor event recorder."""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from sqlalchemy.exc import SQLAlchemyError

from insights.auth.models import User
from insights.logging_config import get_logger
from insights.referral.service import normalize_code, registry_for
from insights.storage.db import db
from insights.tracking.models import AttributionSource, VisitorEvent

logger = get_logger(__name__)

DEFAULT_PAGE = "landing"

_FIELD_LIMITS = {"page": 100, "session_id": 255, "referral": 20, "promo": 20}

# Schedules fn(*args) to run later; returns nothing to the caller
Scheduler = Callable[..., Any]


class VisitInput(BaseModel):
    """Body sent by the frontend tracker. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    page: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")
    time_spent: float | None = Field(default=None, alias="timeSpent")
    referral: str | None = None
    promo: str | None = None

    @field_validator("time_spent", mode="before")
    @classmethod
    def _coerce_time_spent(cls, value: Any) -> float | None:
        try:
            value = float(value)
        except (TypeError, ValueError):
            return None
        return value if math.isfinite(value) and value >= 0 else None

    @field_validator("page", "session_id", "referral", "promo", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any, info: ValidationInfo) -> str | None:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str):
            return None
        # Oversized values are cut to the column width rather than rejected
        return value[:_FIELD_LIMITS[info.field_name]]

    def attribution(self) -> tuple[str, AttributionSource] | None:
        """Resolve the single attribution tag; referral wins over promo."""
        referral = normalize_code(self.referral)
        if referral:
            return referral, AttributionSource.REFERRAL
        promo = normalize_code(self.promo)
        if promo:
            return promo, AttributionSource.PROMO
        return None


@dataclass
class RequestContext:
    """Caller identity and transport metadata for one tracked request."""
    user: User | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    referrer: str | None = None


@dataclass
class RecordOutcome:
    ok: bool
    event_id: int | None = None


def _run_inline(fn: Callable[..., Any], *args: Any) -> None:
    fn(*args)


class VisitorEventRecorder:
    """Persists visitor events and dispatches click counting."""

    def __init__(self):
        self.logger = get_logger(__name__)

    def record(
        self,
        visit: VisitInput,
        context: RequestContext,
        schedule: Scheduler | None = None,
    ) -> RecordOutcome:
        """Record one page view.

        Store failures are logged and reported as ``ok=False``; nothing is
        raised so tracking can never break the page it instruments.

        Args:
            visit: Tracker payload
            context: Caller identity and request metadata
            schedule: Dispatcher for the click increment (runs inline if None)

        Returns:
            RecordOutcome
        """
        user_id = context.user.id if context.user is not None else None
        attribution = visit.attribution()
        code, source = attribution if attribution else (None, None)
        now = datetime.utcnow()

        event = VisitorEvent(
            user_id=user_id,
            page=visit.page or DEFAULT_PAGE,
            session_id=visit.session_id or None,
            user_agent=context.user_agent,
            ip_address=context.ip_address,
            referrer=context.referrer,
            attribution_code=code,
            attribution_source=source,
            is_authenticated=user_id is not None,
            time_spent=visit.time_spent or 0.0,
            created_at=now,
            updated_at=now,
        )

        try:
            with db.session() as session:
                session.add(event)
                session.flush()
                event_id = event.id
        except SQLAlchemyError as e:
            self.logger.error("visit_record_failed", page=event.page, error=str(e))
            return RecordOutcome(ok=False)

        self.logger.info(
            "visit_recorded",
            event_id=event_id,
            page=event.page,
            authenticated=event.is_authenticated,
            attribution=code,
        )

        if code is not None:
            # Fire and forget; record_hit swallows its own failures
            (schedule or _run_inline)(registry_for(source).record_hit, code)

        return RecordOutcome(ok=True, event_id=event_id)


# Singleton instance
visitor_recorder = VisitorEventRecorder()
