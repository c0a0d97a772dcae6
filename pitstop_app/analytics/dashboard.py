"""Dashboard aggregation: reduce per-issue stall verdicts into population metrics."""

from __future__ import annotations

import logging
import math
import time
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime

import pandas as pd
import pytz

from pitstop_app.analytics.changelog import hours_between
from pitstop_app.core.config import NOTABLE_STALLED_LIMIT
from pitstop_app.core.models import (
    DashboardMetrics,
    IssueSnapshot,
    StallResult,
    StalledIssueSummary,
    StatusCounts,
)

logger = logging.getLogger(__name__)

ClassifyFn = Callable[[IssueSnapshot], StallResult]
ProgressCallback = Callable[[str, int | None, int | None], None]

RECORD_COLUMNS = ("key", "status", "assignee", "stalled", "hours_since_update")


def _breakdown(frame: pd.DataFrame, column: str) -> dict[str, StatusCounts]:
    if frame.empty:
        return {}
    grouped = frame.groupby(column, sort=False).agg(
        total=("key", "count"),
        stalled=("stalled", "sum"),
    )
    return {
        str(name): StatusCounts(
            total=int(row.total),
            stalled=int(row.stalled),
            healthy=int(row.total - row.stalled),
        )
        for name, row in grouped.iterrows()
    }


def aggregate(
    snapshots: Iterable[IssueSnapshot],
    classify: ClassifyFn,
    *,
    now: datetime | None = None,
    delay_seconds: float = 0.0,
    notable_limit: int = NOTABLE_STALLED_LIMIT,
    progress: ProgressCallback | None = None,
) -> DashboardMetrics:
    """Classify each issue in caller order and reduce the verdicts.

    Issues are processed one at a time with an optional pause between them
    (shared Jira rate-limit budget). An issue whose classification raises is
    logged, counted in ``failed_issues`` and excluded from every other count,
    so ``total_issues == stalled_issues + healthy_issues`` always holds.

    The notable list keeps stalled issues ordered by ascending hours since
    update (least stalled first), while ``longest_stalled`` is the maximum.
    """
    now = now or datetime.now(tz=pytz.UTC)
    population = list(snapshots)
    records: list[dict[str, object]] = []
    stalled_items: list[StalledIssueSummary] = []
    reason_counts: Counter[str] = Counter()
    metrics = DashboardMetrics()

    for idx, snapshot in enumerate(population, start=1):
        if progress:
            progress(f"Analyzing {snapshot.key}", idx - 1, len(population))
        try:
            result = classify(snapshot)
        except Exception as exc:
            logger.warning("Error analyzing %s: %s", snapshot.key, exc)
            metrics.failed_issues += 1
            continue
        finally:
            if delay_seconds > 0 and idx < len(population):
                time.sleep(delay_seconds)

        assignee = snapshot.assignee.name if snapshot.assignee else "Unassigned"
        hours = hours_between(now, snapshot.updated) if snapshot.updated else 0.0
        records.append(
            {
                "key": snapshot.key,
                "status": snapshot.status,
                "assignee": assignee,
                "stalled": result.is_stalled,
                "hours_since_update": hours,
            }
        )
        if not result.is_stalled:
            continue
        metrics.by_severity[result.severity.name] += 1
        reason_counts.update(result.reason_types)
        stalled_items.append(
            StalledIssueSummary(
                key=snapshot.key,
                status=snapshot.status,
                assignee=assignee,
                hours_since_update=math.floor(hours),
                severity=result.severity,
                reasons=tuple(result.reason_types),
            )
        )

    frame = pd.DataFrame(records, columns=list(RECORD_COLUMNS))
    if not frame.empty:
        frame["stalled"] = frame["stalled"].astype(bool)
        stalled_frame = frame[frame["stalled"]]
        metrics.total_issues = len(frame)
        metrics.stalled_issues = len(stalled_frame)
        metrics.healthy_issues = metrics.total_issues - metrics.stalled_issues
        if not stalled_frame.empty:
            metrics.average_stall_hours = math.floor(stalled_frame["hours_since_update"].mean())
    metrics.by_status = _breakdown(frame, "status")
    metrics.by_assignee = _breakdown(frame, "assignee")
    metrics.stall_reasons = dict(reason_counts)

    for item in stalled_items:
        if metrics.longest_stalled is None or item.hours_since_update > metrics.longest_stalled.hours_since_update:
            metrics.longest_stalled = item
    metrics.recently_stalled = sorted(stalled_items, key=lambda s: s.hours_since_update)[:notable_limit]

    if progress:
        progress("Dashboard metrics calculated", len(population), len(population))
    logger.info(
        "Dashboard metrics: %s total, %s stalled, %s healthy, %s failed",
        metrics.total_issues,
        metrics.stalled_issues,
        metrics.healthy_issues,
        metrics.failed_issues,
    )
    return metrics


def breakdown_frame(counts: dict[str, StatusCounts], label: str) -> pd.DataFrame:
    """Tabular view of a per-status or per-assignee breakdown."""
    if not counts:
        return pd.DataFrame(columns=[label, "total", "stalled", "healthy"])
    rows = [{label: name, "total": c.total, "stalled": c.stalled, "healthy": c.healthy} for name, c in counts.items()]
    return pd.DataFrame(rows).sort_values(by=["stalled", "total"], ascending=False, kind="stable").reset_index(
        drop=True
    )


def stalled_frame(items: Iterable[StalledIssueSummary]) -> pd.DataFrame:
    rows = [
        {
            "key": s.key,
            "status": s.status,
            "assignee": s.assignee,
            "hours_since_update": s.hours_since_update,
            "severity": s.severity.name,
            "reasons": ", ".join(s.reasons),
        }
        for s in items
    ]
    return pd.DataFrame(rows, columns=["key", "status", "assignee", "hours_since_update", "severity", "reasons"])
