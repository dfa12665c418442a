"""Audit heuristics over AI extraction results."""

from leitordocs.domain.audit.alerts import detect_alerts
from leitordocs.domain.audit.summary import AlertsSummary, summarize_alerts

__all__ = [
    "AlertsSummary",
    "detect_alerts",
    "summarize_alerts",
]
