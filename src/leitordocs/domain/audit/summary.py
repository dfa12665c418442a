"""Dashboard aggregation of audit alerts stored with analysis logs."""

import json
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field


class RecentAlert(BaseModel):
    """One analysis that raised alerts."""

    file_name: str | None = None
    company: str | None = None
    created_at: str | None = None
    alerts: list[str] = Field(default_factory=list)


class AlertsSummary(BaseModel):
    """Alert counts for the admin dashboard."""

    total: int = 0
    by_alert_type: dict[str, int] = Field(default_factory=dict)
    recent_alerts: list[RecentAlert] = Field(default_factory=list)


def parse_stored_alerts(raw: Any) -> list[str]:
    """Normalize the ``ai_alerts`` column, which may be a list or a JSON string."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return []
    if not isinstance(raw, list):
        return []
    return [alert for alert in raw if alert and isinstance(alert, str)]


def summarize_alerts(
    logs: Iterable[Mapping[str, Any]],
    recent_limit: int = 5,
) -> AlertsSummary:
    """Aggregate alerts over analysis log rows.

    Args:
        logs: Rows from ``analysis_logs`` (``ai_alerts``, ``file_name``,
            ``company``, ``created_at``)
        recent_limit: How many of the newest analyses with alerts to include

    Returns:
        AlertsSummary with total count, per-type counts and recent entries
    """
    counts: Counter[str] = Counter()
    with_alerts: list[RecentAlert] = []

    for row in logs:
        alerts = parse_stored_alerts(row.get("ai_alerts"))
        if not alerts:
            continue
        counts.update(alerts)
        with_alerts.append(
            RecentAlert(
                file_name=row.get("file_name"),
                company=row.get("company"),
                created_at=row.get("created_at"),
                alerts=alerts,
            )
        )

    with_alerts.sort(key=lambda entry: entry.created_at or "", reverse=True)

    return AlertsSummary(
        total=sum(counts.values()),
        by_alert_type=dict(counts),
        recent_alerts=with_alerts[:recent_limit],
    )
