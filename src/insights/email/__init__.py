"""Outbound email delivery."""
