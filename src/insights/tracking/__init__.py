"""Visitor event log."""

from insights.tracking.models import AttributionSource, VisitorEvent

__all__ = ["AttributionSource", "VisitorEvent"]
