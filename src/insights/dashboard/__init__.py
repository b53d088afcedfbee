"""Admin dashboards: reports, input normalization and encouragement emails."""

from insights.dashboard.encouragement import EncouragementService, encouragement_service
from insights.dashboard.reports import ReportingService, reporting_service

__all__ = ["EncouragementService", "ReportingService", "encouragement_service", "reporting_service"]
