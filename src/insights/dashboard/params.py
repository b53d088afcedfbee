"""Query parameter normalization for the dashboard endpoints.

Reporting endpoints are permissive: a missing or malformed number falls
back to its default, an out-of-range number is clamped, and an unknown
filter value means "no filter". All of that is decided here, before any
query is built.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from insights.storage.models import COMPLETED_STATUSES, PENDING_STATUSES, ApplicationStatus

DEFAULT_PAGE = 1

ACTIVITY_DEFAULT_LIMIT = 10
ACTIVITY_MAX_LIMIT = 50

APPLICATIONS_DEFAULT_LIMIT = 50
VISITORS_DEFAULT_LIMIT = 20
MAX_PAGE_SIZE = 100

DEFAULT_DAYS = 30
MIN_DAYS = 1
MAX_DAYS = 365


def to_number(raw: Any) -> int | None:
    """Parse a query value into an int, or None when it is not a finite number.

    Fractions are truncated toward zero.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return int(value)


def clamp(value: int, low: int, high: int | None = None) -> int:
    value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def normalize_page(raw: Any) -> int:
    value = to_number(raw)
    return clamp(DEFAULT_PAGE if value is None else value, 1)


def normalize_limit(raw: Any, default: int, maximum: int = MAX_PAGE_SIZE) -> int:
    value = to_number(raw)
    return clamp(default if value is None else value, 1, maximum)


def normalize_days(raw: Any) -> int:
    """Analytics window in days: default 30, clamped to [1, 365]."""
    value = to_number(raw)
    return clamp(DEFAULT_DAYS if value is None else value, MIN_DAYS, MAX_DAYS)


@dataclass(frozen=True)
class Pagination:
    """Page/limit pair after normalization."""
    page: int
    limit: int

    @classmethod
    def from_query(cls, page: Any, limit: Any, default_limit: int) -> "Pagination":
        return cls(page=normalize_page(page), limit=normalize_limit(limit, default_limit))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def pages(self, total: int) -> int:
        return math.ceil(total / self.limit)


class StatusBucket(str, Enum):
    """Mutually exclusive groups of application statuses."""
    PENDING = "pending"
    COMPLETED = "completed"

    @property
    def statuses(self) -> tuple[ApplicationStatus, ...]:
        return PENDING_STATUSES if self is StatusBucket.PENDING else COMPLETED_STATUSES

    @classmethod
    def parse(cls, raw: Any) -> "StatusBucket | None":
        """Exact, case-sensitive match; anything else means no filter."""
        try:
            return cls(raw)
        except ValueError:
            return None

    @classmethod
    def of(cls, status: ApplicationStatus) -> "StatusBucket":
        return cls.PENDING if status in PENDING_STATUSES else cls.COMPLETED


class VisitorFilter(str, Enum):
    """Visitor listing filters."""
    ANONYMOUS = "anonymous"
    LOGGED_IN = "logged-in"
    NOT_APPLIED = "not-applied"

    @classmethod
    def parse(cls, raw: Any) -> "VisitorFilter | None":
        """Exact, case-sensitive match; anything else means no filter."""
        try:
            return cls(raw)
        except ValueError:
            return None
