"""Utility functions."""

from .dates import days_ago, ensure_utc, format_report_date, utc_now

__all__ = ["utc_now", "ensure_utc", "days_ago", "format_report_date"]
