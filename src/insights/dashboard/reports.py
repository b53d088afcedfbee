"""Dashboard reporting: counts, activity, application buckets and visitor analytics.

Every report is a read-only snapshot assembled from several independent
queries; results are joined in memory by user id. Reports are not
transactionally consistent with each other, which is acceptable for an
analytics dashboard.
"""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import desc, func
from sqlalchemy.orm import Session, joinedload

from insights.auth.models import APPLICANT_ROLES, User
from insights.dashboard.params import (
    ACTIVITY_DEFAULT_LIMIT,
    ACTIVITY_MAX_LIMIT,
    APPLICATIONS_DEFAULT_LIMIT,
    VISITORS_DEFAULT_LIMIT,
    Pagination,
    StatusBucket,
    VisitorFilter,
    normalize_days,
    normalize_limit,
)
from insights.logging_config import get_logger
from insights.storage.db import db
from insights.storage.models import Application, Opportunity
from insights.tracking.models import AttributionSource, VisitorEvent

logger = get_logger(__name__)

RECENT_SIGNUPS_LIMIT = 20
ANONYMOUS_NAME = "Anonymous"
ANONYMOUS_EMAIL = "—"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _status_value(status) -> str | None:
    return status.value if status is not None else None


class ReportingService:
    """Read-and-aggregate views over the visitor log and application data."""

    def __init__(self):
        self.logger = get_logger(__name__)

    # ==================== COUNTS & ACTIVITY ====================

    def counts(self, user: User) -> dict[str, int]:
        """Opportunity/application counts scoped by the caller's role.

        Admins see global counts; everyone else sees active opportunities
        and only their own applications.
        """
        with db.session() as session:
            opportunities = session.query(func.count(Opportunity.id))
            applications = session.query(func.count(Application.id))
            if not user.is_admin:
                opportunities = opportunities.filter(Opportunity.is_active.is_(True))
                applications = applications.filter(Application.user_id == user.id)

            my_applications = (
                session.query(func.count(Application.id))
                .filter(Application.user_id == user.id)
                .scalar()
                or 0
            )

            return {
                "opportunities": opportunities.scalar() or 0,
                "applications": applications.scalar() or 0,
                "myApplications": my_applications,
            }

    def recent_activity(self, user: User, limit: Any = None) -> list[dict[str, Any]]:
        """The caller's latest applications, newest first."""
        limit = normalize_limit(limit, ACTIVITY_DEFAULT_LIMIT, ACTIVITY_MAX_LIMIT)

        with db.session() as session:
            applications = (
                session.query(Application)
                .options(joinedload(Application.opportunity))
                .filter(Application.user_id == user.id)
                .order_by(Application.created_at.desc(), Application.id.desc())
                .limit(limit)
                .all()
            )

            return [
                {
                    "id": application.id,
                    "type": "application",
                    "createdAt": _iso(application.created_at),
                    "status": _status_value(application.status),
                    "opportunity": {
                        "id": application.opportunity.id,
                        "title": application.opportunity.title,
                        "company": application.opportunity.company,
                    } if application.opportunity else None,
                }
                for application in applications
            ]

    # ==================== APPLICATIONS ====================

    def applications_by_status(
        self,
        page: Any = None,
        limit: Any = None,
        status: Any = None,
    ) -> dict[str, Any]:
        """Paginated application list, optionally filtered to one bucket.

        ``stats`` counts the buckets of the rows on the returned page only.
        """
        pagination = Pagination.from_query(page, limit, APPLICATIONS_DEFAULT_LIMIT)
        bucket = StatusBucket.parse(status)

        with db.session() as session:
            query = session.query(Application)
            if bucket is not None:
                query = query.filter(Application.status.in_(bucket.statuses))

            total = query.count()
            applications = (
                query.options(
                    joinedload(Application.user),
                    joinedload(Application.opportunity),
                )
                .order_by(Application.created_at.desc(), Application.id.desc())
                .offset(pagination.offset)
                .limit(pagination.limit)
                .all()
            )

            rows = [self._format_application(application) for application in applications]

        return {
            "applications": rows,
            "total": total,
            "page": pagination.page,
            "pages": pagination.pages(total),
            "stats": {
                StatusBucket.PENDING.value: sum(
                    1 for row in rows if row["statusType"] == StatusBucket.PENDING.value
                ),
                StatusBucket.COMPLETED.value: sum(
                    1 for row in rows if row["statusType"] == StatusBucket.COMPLETED.value
                ),
            },
        }

    def _format_application(self, application: Application) -> dict[str, Any]:
        applicant = application.user
        opportunity = application.opportunity
        return {
            "id": application.id,
            "applicant": {
                "name": applicant.name if applicant else None,
                "email": applicant.email if applicant else None,
            },
            "opportunity": {
                "title": opportunity.title if opportunity else None,
                "company": opportunity.company if opportunity else None,
                "type": opportunity.type if opportunity else None,
            },
            "status": _status_value(application.status),
            "statusType": StatusBucket.of(application.status).value,
            "createdAt": _iso(application.created_at),
            "updatedAt": _iso(application.updated_at),
            "amountPaid": application.amount_paid,
            "hasResume": bool(application.resume_url),
            "hasCoverLetter": bool(application.cover_letter),
        }

    # ==================== COHORTS ====================

    def applied_user_ids(self, session: Session) -> set[int]:
        """Every user id that appears on any application.

        Full distinct scan of the applications table.
        """
        return {
            user_id
            for (user_id,) in session.query(Application.user_id).distinct()
            if user_id is not None
        }

    def never_applied_users_query(self, session: Session, since: datetime | None = None):
        """Applicant-role users without a single application."""
        query = session.query(User).filter(User.role.in_(APPLICANT_ROLES))
        if since is not None:
            query = query.filter(User.created_at >= since)

        applied = self.applied_user_ids(session)
        if applied:
            query = query.filter(User.id.notin_(applied))
        return query

    # ==================== VISITOR ANALYTICS ====================

    def visitor_analytics(self, days: Any = None) -> dict[str, Any]:
        """Visitor and conversion analytics over a trailing window.

        Args:
            days: Window length; defaulted to 30 and clamped to [1, 365]

        Returns:
            Totals, per-page counts, attribution breakdown, the
            signed-up-but-never-applied cohort and recent signups
        """
        days = normalize_days(days)
        since = datetime.utcnow() - timedelta(days=days)

        with db.session() as session:
            in_window = VisitorEvent.created_at >= since

            total_visitors = (
                session.query(func.count(VisitorEvent.id)).filter(in_window).scalar() or 0
            )
            anon_visitors = (
                session.query(func.count(VisitorEvent.id))
                .filter(in_window, VisitorEvent.is_authenticated.is_(False))
                .scalar()
                or 0
            )

            visits_by_page = (
                session.query(VisitorEvent.page, func.count(VisitorEvent.id).label("count"))
                .filter(in_window)
                .group_by(VisitorEvent.page)
                .order_by(desc("count"), VisitorEvent.page)
                .all()
            )

            avg_time_spent = (
                session.query(func.avg(VisitorEvent.time_spent)).filter(in_window).scalar()
            )

            attribution = self._attribution_breakdown(session, since)

            users_not_applied = (
                self.never_applied_users_query(session, since)
                .order_by(User.created_at.desc(), User.id.desc())
                .all()
            )
            visit_counts = self._visit_counts(session, [u.id for u in users_not_applied])

            recent_signups = (
                session.query(User)
                .filter(User.role.in_(APPLICANT_ROLES), User.created_at >= since)
                .order_by(User.created_at.desc(), User.id.desc())
                .limit(RECENT_SIGNUPS_LIMIT)
                .all()
            )

        self.logger.debug(
            "visitor_analytics_computed",
            days=days,
            total=total_visitors,
            not_applied=len(users_not_applied),
        )

        return {
            "period": f"{days} days",
            "days": days,
            "analytics": {
                "totalVisitors": total_visitors,
                "anonVisitors": anon_visitors,
                "authenticatedVisitors": max(0, total_visitors - anon_visitors),
                "usersNotAppliedCount": len(users_not_applied),
                "visitorsByPage": [
                    {"page": page, "count": count} for page, count in visits_by_page
                ],
                "avgTimeSpent": float(avg_time_spent) if avg_time_spent else 0,
                "attribution": attribution,
            },
            "usersNotApplied": [
                {
                    "id": user.id,
                    "name": user.name,
                    "email": user.email,
                    "joinedAt": _iso(user.created_at),
                    "visits": visit_counts.get(user.id, 0),
                }
                for user in users_not_applied
            ],
            "recentSignups": [
                {
                    "id": user.id,
                    "name": user.name,
                    "email": user.email,
                    "createdAt": _iso(user.created_at),
                }
                for user in recent_signups
            ],
        }

    def _visit_counts(self, session: Session, user_ids: list[int]) -> dict[int, int]:
        """Visit events per user (all time), for the given users."""
        if not user_ids:
            return {}
        rows = (
            session.query(VisitorEvent.user_id, func.count(VisitorEvent.id))
            .filter(VisitorEvent.user_id.in_(user_ids))
            .group_by(VisitorEvent.user_id)
            .all()
        )
        return {user_id: count for user_id, count in rows}

    def _attribution_breakdown(self, session: Session, since: datetime) -> dict[str, list[dict]]:
        """Visits per attribution code inside the window, grouped by source."""
        rows = (
            session.query(
                VisitorEvent.attribution_source,
                VisitorEvent.attribution_code,
                func.count(VisitorEvent.id).label("count"),
            )
            .filter(
                VisitorEvent.created_at >= since,
                VisitorEvent.attribution_code.isnot(None),
            )
            .group_by(VisitorEvent.attribution_source, VisitorEvent.attribution_code)
            .order_by(desc("count"), VisitorEvent.attribution_code)
            .all()
        )

        breakdown: dict[str, list[dict]] = {source.value: [] for source in AttributionSource}
        for source, code, count in rows:
            if source is None:
                continue
            breakdown[source.value].append({"code": code, "count": count})
        return breakdown

    # ==================== VISITOR LISTING ====================

    def list_visitors(self, page: Any = None, limit: Any = None, type: Any = None) -> dict[str, Any]:
        """Paginated visitor events, newest first.

        Args:
            page: Page number (>= 1)
            limit: Page size, default 20, max 100
            type: anonymous, logged-in or not-applied; anything else lists all
        """
        pagination = Pagination.from_query(page, limit, VISITORS_DEFAULT_LIMIT)
        visitor_filter = VisitorFilter.parse(type)

        with db.session() as session:
            query = session.query(VisitorEvent)
            if visitor_filter is VisitorFilter.ANONYMOUS:
                query = query.filter(VisitorEvent.is_authenticated.is_(False))
            elif visitor_filter is VisitorFilter.LOGGED_IN:
                query = query.filter(VisitorEvent.is_authenticated.is_(True))
            elif visitor_filter is VisitorFilter.NOT_APPLIED:
                cohort_ids = [
                    user_id
                    for (user_id,) in self.never_applied_users_query(session).with_entities(User.id)
                ]
                query = query.filter(
                    VisitorEvent.is_authenticated.is_(True),
                    VisitorEvent.user_id.in_(cohort_ids),
                )

            total = query.count()
            events = (
                query.options(joinedload(VisitorEvent.user))
                .order_by(VisitorEvent.created_at.desc(), VisitorEvent.id.desc())
                .offset(pagination.offset)
                .limit(pagination.limit)
                .all()
            )

            visitors = [self._format_visitor(event) for event in events]

        return {
            "visitors": visitors,
            "total": total,
            "page": pagination.page,
            "pages": pagination.pages(total),
        }

    def _format_visitor(self, event: VisitorEvent) -> dict[str, Any]:
        user = event.user
        source = event.attribution_source
        return {
            "id": event.id,
            "userName": (user.name if user else None) or ANONYMOUS_NAME,
            "userEmail": (user.email if user else None) or ANONYMOUS_EMAIL,
            "page": event.page,
            "referral": event.attribution_code if source is AttributionSource.REFERRAL else None,
            "promo": event.attribution_code if source is AttributionSource.PROMO else None,
            "timeSpent": event.time_spent,
            "isAuthenticated": event.is_authenticated,
            "userAgent": event.user_agent,
            "visitedAt": _iso(event.created_at),
        }


# Singleton instance
reporting_service = ReportingService()
