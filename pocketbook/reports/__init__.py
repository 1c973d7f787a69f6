"""Reporting package."""

from pocketbook.reports.summary import InvalidDateRangeError, SummaryReporter

__all__ = ["InvalidDateRangeError", "SummaryReporter"]
