"""Markdown write-ups with JSON results."""
from health_eda.reporting.report import Report, Section

__all__ = ['Report', 'Section']
