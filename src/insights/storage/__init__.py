"""Persistence: SQLAlchemy models and session management."""
