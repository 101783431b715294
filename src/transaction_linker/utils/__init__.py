"""Shared helpers for money, dates and logging."""
