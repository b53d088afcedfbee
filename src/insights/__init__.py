"""Visitor tracking, referral attribution and admin dashboards."""

__version__ = "1.0.0"
