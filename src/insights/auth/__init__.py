"""Caller identity: user model and bearer token verification."""

from insights.auth.models import APPLICANT_ROLES, User, UserRole

__all__ = ["APPLICANT_ROLES", "User", "UserRole"]
