"""Stall classification: run independent detectors and rank their reasons."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import pytz

from pitstop_app.analytics.changelog import hours_between, real_last_activity
from pitstop_app.core.config import (
    BLOCKED_STATUS,
    IN_PROGRESS_STATUS,
    NO_COMMENTS_MIN_AGE_DAYS,
    OWNER_REQUIRED_STATUSES,
    Settings,
    ThresholdConfig,
)
from pitstop_app.core.models import (
    ChangelogAnalysis,
    HumanComment,
    IssueSnapshot,
    ReasonType,
    Severity,
    StallReason,
    StallResult,
)
from pitstop_app.core.sources import IssueDataSource, guarded_fetch
from pitstop_app.core.status import status_equals, status_in

logger = logging.getLogger(__name__)

SUMMARY_PREFIXES = {
    Severity.CRITICAL: "🚨 Critical:",
    Severity.HIGH: "⚠️ High Priority:",
}
DEFAULT_SUMMARY_PREFIX = "⏰ Attention Needed:"


@dataclass(frozen=True, slots=True)
class _Facts:
    snapshot: IssueSnapshot
    now: datetime
    elapsed_hours: float
    threshold: float


def highest_severity(reasons: Iterable[StallReason]) -> Severity | None:
    """Max severity over reasons, or ``None`` for no reasons."""
    return max((r.severity for r in reasons), default=None)


def summarize(reasons: tuple[StallReason, ...]) -> str:
    """Describe the first reason at the highest severity."""
    top = highest_severity(reasons)
    if top is None:
        return "No stall detected"
    lead = next(r for r in reasons if r.severity == top)
    return f"{SUMMARY_PREFIXES.get(top, DEFAULT_SUMMARY_PREFIX)} {lead.message}"


def actionable_insights(reasons: Iterable[StallReason]) -> tuple[str, ...]:
    """One generic next step per detector reason, deduplicated in order."""
    insights: list[str] = []
    for reason in reasons:
        if reason.type is ReasonType.NO_ACTIVITY:
            text = "Consider updating the issue or moving it to a different status"
        elif reason.type is ReasonType.NO_HUMAN_INTERACTION:
            text = f"Reach out to {reason.last_author or 'the team'} for an update"
        elif reason.type is ReasonType.NO_COMMENTS:
            text = "Add a comment to start the conversation or clarify requirements"
        elif reason.type is ReasonType.ASSIGNED_NOT_PROGRESSING:
            text = f"Check with {reason.assignee} if they need help or if priorities have changed"
        elif reason.type is ReasonType.UNASSIGNED_ACTIVE:
            text = "Assign this issue to someone to move it forward"
        elif reason.type is ReasonType.HAS_BLOCKERS:
            text = f"Resolve blockers first: {', '.join(reason.blockers)}"
        elif reason.type is ReasonType.STATUS_BLOCKED:
            text = "Identify and document what is blocking this issue, then work to resolve it"
        else:
            continue
        if text not in insights:
            insights.append(text)
    return tuple(insights)


def detect_no_activity(facts: _Facts) -> StallReason | None:
    if facts.elapsed_hours <= facts.threshold:
        return None
    severity = Severity.HIGH if facts.elapsed_hours > 2 * facts.threshold else Severity.MEDIUM
    hours = math.floor(facts.elapsed_hours)
    threshold = facts.threshold
    return StallReason(
        type=ReasonType.NO_ACTIVITY,
        severity=severity,
        message=f"No activity in '{facts.snapshot.status}' for {hours} hours (threshold: {threshold:g}h)",
        hours=hours,
        threshold=threshold,
        status=facts.snapshot.status,
    )


def detect_comment_silence(
    facts: _Facts,
    comment: HumanComment | None,
    threshold_hours: float,
) -> StallReason | None:
    if comment is not None:
        since = hours_between(facts.now, comment.created)
        if since <= threshold_hours:
            return None
        hours = math.floor(since)
        return StallReason(
            type=ReasonType.NO_HUMAN_INTERACTION,
            severity=Severity.MEDIUM,
            message=f"No human comments for {hours} hours (last by {comment.author})",
            hours=hours,
            threshold=threshold_hours,
            last_author=comment.author,
        )
    created = facts.snapshot.created
    if created is None:
        return None
    age_days = hours_between(facts.now, created) / 24
    if age_days <= NO_COMMENTS_MIN_AGE_DAYS:
        return None
    days = math.floor(age_days)
    return StallReason(
        type=ReasonType.NO_COMMENTS,
        severity=Severity.MEDIUM,
        message=f"Issue is {days} days old with no comments",
        days=days,
    )


def detect_assigned_not_progressing(facts: _Facts, in_progress_threshold: float) -> StallReason | None:
    snapshot = facts.snapshot
    if snapshot.assignee is None or not status_equals(snapshot.status, IN_PROGRESS_STATUS):
        return None
    if facts.elapsed_hours <= in_progress_threshold:
        return None
    hours = math.floor(facts.elapsed_hours)
    name = snapshot.assignee.name
    return StallReason(
        type=ReasonType.ASSIGNED_NOT_PROGRESSING,
        severity=Severity.HIGH,
        message=f"Assigned to {name} but no progress in {hours} hours",
        hours=hours,
        threshold=in_progress_threshold,
        assignee=name,
    )


def detect_unassigned_active(facts: _Facts) -> StallReason | None:
    snapshot = facts.snapshot
    if snapshot.assignee is not None or not status_in(snapshot.status, OWNER_REQUIRED_STATUSES):
        return None
    return StallReason(
        type=ReasonType.UNASSIGNED_ACTIVE,
        severity=Severity.HIGH,
        message=f"Issue is '{snapshot.status}' but has no assignee",
        status=snapshot.status,
    )


def detect_blockers(blockers: list[str] | None) -> StallReason | None:
    if not blockers:
        return None
    return StallReason(
        type=ReasonType.HAS_BLOCKERS,
        severity=Severity.CRITICAL,
        message=f"Blocked by {len(blockers)} issue(s): {', '.join(blockers)}",
        blockers=tuple(blockers),
    )


def detect_status_blocked(facts: _Facts) -> StallReason | None:
    if not status_equals(facts.snapshot.status, BLOCKED_STATUS):
        return None
    hours = math.floor(facts.elapsed_hours)
    return StallReason(
        type=ReasonType.STATUS_BLOCKED,
        severity=Severity.CRITICAL,
        message=f"Issue status is 'Blocked' for {hours} hours",
        hours=hours,
        status=facts.snapshot.status,
    )


class StallClassifier:
    """Classify one issue snapshot into a ranked, explained stall verdict.

    Thresholds and settings are explicit values loaded once by the caller.
    Detectors never short-circuit one another; a collaborator failure only
    disables the detector that needed it.
    """

    def __init__(self, source: IssueDataSource, thresholds: ThresholdConfig, settings: Settings):
        self.source = source
        self.thresholds = thresholds
        self.settings = settings

    def classify(
        self,
        snapshot: IssueSnapshot,
        analysis: ChangelogAnalysis | None = None,
        *,
        now: datetime | None = None,
    ) -> StallResult:
        now = now or datetime.now(tz=pytz.UTC)
        features = self.settings.features
        if not features.use_changelog_analysis:
            analysis = None
        last_activity = real_last_activity(snapshot, analysis) or now
        facts = _Facts(
            snapshot=snapshot,
            now=now,
            elapsed_hours=hours_between(now, last_activity),
            threshold=self.thresholds.for_status(snapshot.status),
        )

        found: list[StallReason | None] = []
        if features.detect_no_activity:
            found.append(detect_no_activity(facts))
        if features.detect_no_human_comments:
            ok, comment = guarded_fetch(self.source.fetch_last_human_comment, snapshot.id, "last human comment")
            if ok:
                found.append(
                    detect_comment_silence(facts, comment, self.settings.no_human_comment_threshold_hours)
                )
        if features.detect_assigned_not_progressing:
            found.append(
                detect_assigned_not_progressing(facts, self.thresholds.for_status(IN_PROGRESS_STATUS))
            )
        if features.detect_unassigned:
            found.append(detect_unassigned_active(facts))
        if features.detect_blockers:
            ok, blockers = guarded_fetch(self.source.fetch_blockers, snapshot.id, "blockers")
            if ok:
                found.append(detect_blockers(blockers))
        found.append(detect_status_blocked(facts))
        if analysis is not None:
            found.extend(StallReason.from_changelog_pattern(p) for p in analysis.patterns)

        reasons = tuple(r for r in found if r is not None)
        severity = highest_severity(reasons)
        if reasons:
            logger.info("%s is stalled (%s): %s", snapshot.key, severity.name, [r.type.value for r in reasons])
        return StallResult(
            is_stalled=bool(reasons),
            severity=severity,
            reasons=reasons,
            summary=summarize(reasons),
            insights=actionable_insights(reasons),
            changelog_analysis=analysis,
            issue_key=snapshot.key,
        )
