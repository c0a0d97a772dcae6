"""Changelog analysis: separate meaningful change signal from bot/system noise.

Walks an issue's change history (most recent first), counts meaningful and
noise edits, finds the last meaningful update and its author, and detects
temporal anti-patterns in the status and assignment timelines:

- STATUS_THRASHING: many status changes inside a short window
- STATUS_PING_PONG: recent statuses bouncing between two values
- ASSIGNMENT_CHURNING: repeated reassignment within a week
- MULTIPLE_REOPENS: the issue keeps coming back to an open state
- STUCK_IN_STATUS: no status change for over a week

All functions are pure; the input history is never mutated.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import datetime

import pytz

from pitstop_app.core.config import (
    BOT_ACCOUNT_TYPES,
    BOT_NAME_PATTERNS,
    CHURN_MIN_ASSIGNMENTS,
    CHURN_WINDOW_HOURS,
    MEANINGFUL_FIELDS,
    NOISE_FIELDS,
    PING_PONG_LOOKBACK,
    PING_PONG_MIN_CHANGES,
    REOPEN_MARKERS,
    REOPEN_MIN_COUNT,
    STUCK_MIN_HOURS,
    THRASHING_MIN_CHANGES,
    THRASHING_WINDOW_HOURS,
)
from pitstop_app.core.models import (
    ChangeItem,
    ChangelogAnalysis,
    ChangelogEntry,
    Identity,
    IssueSnapshot,
    Pattern,
    PatternType,
    Severity,
    TimelineEvent,
)

logger = logging.getLogger(__name__)


def hours_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / 3600.0


def is_bot_author(author: Identity | None) -> bool:
    """Return True for missing authors, app/system accounts, or bot-like names."""
    if author is None:
        return True
    if (author.account_type or "") in BOT_ACCOUNT_TYPES:
        return True
    display_name = (author.display_name or "").lower()
    return any(pattern in display_name for pattern in BOT_NAME_PATTERNS)


def is_meaningful_change(item: ChangeItem, is_bot: bool) -> bool:
    return item.field in MEANINGFUL_FIELDS and not is_bot


def is_noise_change(item: ChangeItem, is_bot: bool) -> bool:
    return item.field in NOISE_FIELDS or is_bot


def analyze_changelog(
    entries: Iterable[ChangelogEntry] | None,
    *,
    now: datetime | None = None,
) -> ChangelogAnalysis:
    """Build a :class:`ChangelogAnalysis` from raw history entries.

    Parameters
    ----------
    entries : iterable of ChangelogEntry or None
        History for a single issue. An empty or missing history is valid.
    now : datetime, optional
        Analysis time used by the windowed pattern checks. Defaults to the
        current UTC time.

    Returns
    -------
    ChangelogAnalysis
        Counts, timelines (most recent first) and detected patterns.
    """
    ordered = sorted(entries or (), key=lambda e: e.created, reverse=True)
    if not ordered:
        return ChangelogAnalysis()
    now = now or datetime.now(tz=pytz.UTC)

    total = 0
    meaningful = 0
    noise = 0
    last_update: datetime | None = None
    last_update_by: str | None = None
    timeline: list[TimelineEvent] = []
    status_changes: list[TimelineEvent] = []
    assignments: list[TimelineEvent] = []

    for entry in ordered:
        author_name = entry.author.name if entry.author else "Unknown"
        bot = is_bot_author(entry.author)
        for item in entry.items:
            total += 1
            if is_meaningful_change(item, bot):
                meaningful += 1
                if last_update is None or entry.created > last_update:
                    last_update = entry.created
                    last_update_by = author_name
                event = TimelineEvent(
                    date=entry.created,
                    field=item.field,
                    from_value=item.from_value,
                    to_value=item.to_value,
                    author=author_name,
                )
                timeline.append(event)
                if item.field == "status":
                    status_changes.append(event)
                elif item.field == "assignee":
                    assignments.append(event)
            elif is_noise_change(item, bot):
                noise += 1

    patterns = detect_patterns(status_changes, assignments, now)
    logger.debug("Changelog analysis: %s meaningful, %s noise of %s changes", meaningful, noise, total)
    return ChangelogAnalysis(
        last_meaningful_update=last_update,
        last_meaningful_update_by=last_update_by,
        total_changes=total,
        meaningful_changes=meaningful,
        noise_changes=noise,
        timeline=tuple(timeline),
        status_changes=tuple(status_changes),
        assignments=tuple(assignments),
        patterns=tuple(patterns),
        thrashing=any(p.type is PatternType.STATUS_THRASHING for p in patterns),
    )


def detect_patterns(
    status_changes: Sequence[TimelineEvent],
    assignments: Sequence[TimelineEvent],
    now: datetime,
) -> list[Pattern]:
    """Run every pattern check; checks are independent and may co-occur."""
    checks = (
        _detect_thrashing(status_changes, now),
        _detect_ping_pong(status_changes),
        _detect_assignment_churn(assignments, now),
        _detect_reopens(status_changes),
        _detect_stuck(status_changes, now),
    )
    return [p for p in checks if p is not None]


def _detect_thrashing(changes: Sequence[TimelineEvent], now: datetime) -> Pattern | None:
    if len(changes) < THRASHING_MIN_CHANGES:
        return None
    recent = tuple(c for c in changes if hours_between(now, c.date) < THRASHING_WINDOW_HOURS)
    if len(recent) < THRASHING_MIN_CHANGES:
        return None
    path = " → ".join(str(c.to_value) for c in recent)
    return Pattern(
        type=PatternType.STATUS_THRASHING,
        severity=Severity.HIGH,
        message=f"Status changed {len(recent)} times in {THRASHING_WINDOW_HOURS} hours: {path}",
        evidence=recent,
        count=len(recent),
    )


def _detect_ping_pong(changes: Sequence[TimelineEvent]) -> Pattern | None:
    if len(changes) < PING_PONG_MIN_CHANGES:
        return None
    recent = tuple(changes[:PING_PONG_LOOKBACK])
    unique = list(dict.fromkeys(str(c.to_value) for c in recent))
    if len(unique) != 2:
        return None
    return Pattern(
        type=PatternType.STATUS_PING_PONG,
        severity=Severity.MEDIUM,
        message=f"Status bouncing between {' ↔ '.join(unique)}",
        evidence=recent,
        count=len(recent),
        values=tuple(unique),
    )


def _detect_assignment_churn(assignments: Sequence[TimelineEvent], now: datetime) -> Pattern | None:
    if len(assignments) < CHURN_MIN_ASSIGNMENTS:
        return None
    recent = tuple(a for a in assignments if hours_between(now, a.date) < CHURN_WINDOW_HOURS)
    if len(recent) < CHURN_MIN_ASSIGNMENTS:
        return None
    assignees = tuple(a.to_value or "Unassigned" for a in recent)
    return Pattern(
        type=PatternType.ASSIGNMENT_CHURNING,
        severity=Severity.MEDIUM,
        message=f"Reassigned {len(recent)} times: {' → '.join(assignees)}",
        evidence=recent,
        count=len(recent),
        values=assignees,
    )


def _detect_reopens(changes: Sequence[TimelineEvent]) -> Pattern | None:
    reopens = tuple(
        c for c in changes if any(marker in (c.to_value or "").lower() for marker in REOPEN_MARKERS)
    )
    if len(reopens) < REOPEN_MIN_COUNT:
        return None
    return Pattern(
        type=PatternType.MULTIPLE_REOPENS,
        severity=Severity.HIGH,
        message=f"Issue reopened {len(reopens)} times - may indicate quality issues",
        evidence=reopens,
        count=len(reopens),
    )


def _detect_stuck(changes: Sequence[TimelineEvent], now: datetime) -> Pattern | None:
    if not changes:
        return None
    last = changes[0]
    hours = hours_between(now, last.date)
    if hours <= STUCK_MIN_HOURS:
        return None
    days = math.floor(hours / 24)
    return Pattern(
        type=PatternType.STUCK_IN_STATUS,
        severity=Severity.MEDIUM,
        message=f"Stuck in '{last.to_value}' for {days} days",
        evidence=(last,),
        count=1,
        status=last.to_value,
        days=days,
    )


def real_last_activity(snapshot: IssueSnapshot, analysis: ChangelogAnalysis | None) -> datetime | None:
    """Last meaningful update when known, otherwise the snapshot's updated time."""
    if analysis is not None and analysis.last_meaningful_update is not None:
        return analysis.last_meaningful_update
    return snapshot.updated
