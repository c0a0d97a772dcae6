"""Context-aware suggestions: turn a stall verdict into prioritized next actions.

Each stall reason kind and each changelog pattern kind has exactly one
generator; the dispatch tables are checked for completeness at import time.
Generated suggestions go through :class:`SuggestionBuilder`, which dedupes by
``(type, action)``, ranks by confidence and truncates once at the end.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from pitstop_app.core.config import (
    BACKLOG_STATUSES,
    DEPENDENCY_RELATION,
    ESCALATION_PRIORITIES,
    REVIEW_STATUSES,
    SUGGESTION_LIMIT,
    normalize_priority_name,
)
from pitstop_app.core.models import (
    ChangelogAnalysis,
    Identity,
    IssueSnapshot,
    LinkedIssue,
    Pattern,
    PatternType,
    ReasonType,
    Severity,
    StallReason,
    StallResult,
    Suggestion,
)
from pitstop_app.core.sources import IssueDataSource, guarded_fetch
from pitstop_app.core.status import is_terminal_status, status_in

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdviceContext:
    """Everything a generator may consult besides the reason itself."""

    snapshot: IssueSnapshot
    blockers: tuple[str, ...] = ()
    watchers: tuple[Identity, ...] = ()
    linked_issues: tuple[LinkedIssue, ...] = ()

    @property
    def other_watchers(self) -> list[Identity]:
        assignee = self.snapshot.assignee
        own_id = assignee.account_id if assignee else None
        return [w for w in self.watchers if w.account_id != own_id]

    def blocker_status(self, key: str) -> str | None:
        for linked in self.linked_issues:
            if linked.key == key:
                return linked.status
        return None


@dataclass(slots=True)
class SuggestionBuilder:
    _items: list[Suggestion] = field(default_factory=list)

    def extend(self, suggestions: Iterable[Suggestion]) -> None:
        self._items.extend(suggestions)

    def __len__(self) -> int:
        return len(self._items)

    def build(self, limit: int = SUGGESTION_LIMIT) -> list[Suggestion]:
        seen: set[tuple[str, str]] = set()
        unique: list[Suggestion] = []
        for s in self._items:
            marker = (s.type, s.action)
            if marker in seen:
                continue
            seen.add(marker)
            unique.append(s)
        # sorted() is stable: equal confidence keeps generation order
        ranked = sorted(unique, key=lambda s: s.confidence, reverse=True)
        return ranked[:limit]


# ------------------ Stall reason generators ------------------
def _unassigned(reason: StallReason, ctx: AdviceContext) -> list[Suggestion]:
    out: list[Suggestion] = []
    reporter = ctx.snapshot.reporter
    if reporter is not None and reporter.active:
        out.append(
            Suggestion(
                type="ASSIGN_TO_REPORTER",
                icon="👤",
                action=f"Assign to reporter: @{reporter.name}",
                rationale="They created this issue and may have context",
                confidence=Severity.MEDIUM,
                users=(reporter,),
            )
        )
    if ctx.watchers:
        watcher = ctx.watchers[0]
        out.append(
            Suggestion(
                type="ASSIGN_TO_WATCHER",
                icon="👥",
                action=f"Assign to watcher: @{watcher.name}",
                rationale="They're watching this issue and may be interested",
                confidence=Severity.MEDIUM,
                users=(watcher,),
            )
        )
    out.append(
        Suggestion(
            type="ASSIGN_ISSUE",
            icon="🎯",
            action="Assign this issue to someone on the team",
            rationale="Unassigned issues rarely make progress",
            confidence=Severity.HIGH,
        )
    )
    return out


def _no_activity(reason: StallReason, ctx: AdviceContext) -> list[Suggestion]:
    out: list[Suggestion] = []
    assignee = ctx.snapshot.assignee
    status = ctx.snapshot.status
    if assignee is not None and assignee.active:
        out.append(
            Suggestion(
                type="PING_ASSIGNEE",
                icon="📣",
                action=f"Ping assignee: @{assignee.name}",
                rationale="Check if they're blocked or need help",
                confidence=Severity.HIGH,
                users=(assignee,),
            )
        )
    if status_in(status, REVIEW_STATUSES):
        reviewers = ctx.other_watchers[:3]
        if reviewers:
            out.append(
                Suggestion(
                    type="PING_REVIEWERS",
                    icon="👀",
                    action="Ping reviewers: " + ", ".join(f"@{r.name}" for r in reviewers),
                    rationale="Code review is taking too long",
                    confidence=Severity.HIGH,
                    users=tuple(reviewers),
                )
            )
    if status_in(status, BACKLOG_STATUSES):
        out.append(
            Suggestion(
                type="REPRIORITIZE",
                icon="📊",
                action="Review priority and sprint assignment",
                rationale="Issue may need to be reprioritized or moved",
                confidence=Severity.MEDIUM,
            )
        )
    return out


def _not_progressing(reason: StallReason, ctx: AdviceContext) -> list[Suggestion]:
    out: list[Suggestion] = []
    assignee = ctx.snapshot.assignee
    if assignee is not None:
        out.append(
            Suggestion(
                type="CHECK_WORKLOAD",
                icon="💼",
                action=f"Check {assignee.name}'s workload",
                rationale="They may be overloaded or blocked",
                confidence=Severity.HIGH,
                users=(assignee,),
            )
        )
        out.append(
            Suggestion(
                type="OFFER_HELP",
                icon="🤝",
                action=f"Offer help to @{assignee.name}",
                rationale="Pair programming or knowledge sharing might unblock them",
                confidence=Severity.MEDIUM,
                users=(assignee,),
            )
        )
    others = ctx.other_watchers
    if others:
        out.append(
            Suggestion(
                type="CONSIDER_REASSIGNMENT",
                icon="🔄",
                action=f"Consider reassigning to @{others[0].name}",
                rationale="Fresh perspective might help",
                confidence=Severity.LOW,
                users=(others[0],),
            )
        )
    return out


def _has_blockers(reason: StallReason, ctx: AdviceContext) -> list[Suggestion]:
    out: list[Suggestion] = []
    for key in reason.blockers or ctx.blockers:
        status = ctx.blocker_status(key)
        action = f"Check blocker {key} ({status})" if status else f"Check blocker {key}"
        out.append(
            Suggestion(
                type="RESOLVE_BLOCKER",
                icon="🔓",
                action=action,
                rationale="This must be resolved before progress can continue",
                confidence=Severity.CRITICAL,
                keys=(key,),
            )
        )
    return out


def _status_blocked(reason: StallReason, ctx: AdviceContext) -> list[Suggestion]:
    out = [
        Suggestion(
            type="DOCUMENT_BLOCKER",
            icon="📝",
            action="Document what's blocking this issue",
            rationale="Clear documentation helps resolve blockers faster",
            confidence=Severity.HIGH,
        )
    ]
    if not ctx.blockers:
        out.append(
            Suggestion(
                type="LINK_BLOCKER",
                icon="🔗",
                action="Link the blocking issue(s) in Jira",
                rationale="This helps track dependencies",
                confidence=Severity.HIGH,
            )
        )
    out.append(
        Suggestion(
            type="ESCALATE_BLOCKER",
            icon="📢",
            action="Escalate to team lead or stakeholder",
            rationale="External blockers may need management attention",
            confidence=Severity.MEDIUM,
        )
    )
    return out


def _no_interaction(reason: StallReason, ctx: AdviceContext) -> list[Suggestion]:
    out: list[Suggestion] = []
    reporter = ctx.snapshot.reporter
    assignee = ctx.snapshot.assignee
    if reporter is not None:
        out.append(
            Suggestion(
                type="ASK_REPORTER",
                icon="❓",
                action=f"Ask {reporter.name} for clarification",
                rationale="They created this and may have additional context",
                confidence=Severity.MEDIUM,
                users=(reporter,),
            )
        )
    if assignee is not None and (reporter is None or assignee.account_id != reporter.account_id):
        out.append(
            Suggestion(
                type="REQUEST_UPDATE",
                icon="💬",
                action=f"Request status update from @{assignee.name}",
                rationale="Regular communication prevents issues from going stale",
                confidence=Severity.HIGH,
                users=(assignee,),
            )
        )
    out.append(
        Suggestion(
            type="TEAM_DISCUSSION",
            icon="👥",
            action="Bring this up in standup or team meeting",
            rationale="Team input might unblock this issue",
            confidence=Severity.MEDIUM,
        )
    )
    return out


def _no_comments(reason: StallReason, ctx: AdviceContext) -> list[Suggestion]:
    out = [
        Suggestion(
            type="ADD_CONTEXT",
            icon="📄",
            action="Add acceptance criteria or requirements",
            rationale="Clear requirements prevent confusion and delays",
            confidence=Severity.HIGH,
        )
    ]
    reporter = ctx.snapshot.reporter
    if reporter is not None:
        out.append(
            Suggestion(
                type="CLARIFY_REQUIREMENTS",
                icon="🔍",
                action=f"Ask {reporter.name} to clarify requirements",
                rationale="Missing details may be causing delays",
                confidence=Severity.MEDIUM,
                users=(reporter,),
            )
        )
    return out


REASON_GENERATORS: dict[ReasonType, Callable[[StallReason, AdviceContext], list[Suggestion]]] = {
    ReasonType.NO_ACTIVITY: _no_activity,
    ReasonType.NO_HUMAN_INTERACTION: _no_interaction,
    ReasonType.NO_COMMENTS: _no_comments,
    ReasonType.ASSIGNED_NOT_PROGRESSING: _not_progressing,
    ReasonType.UNASSIGNED_ACTIVE: _unassigned,
    ReasonType.HAS_BLOCKERS: _has_blockers,
    ReasonType.STATUS_BLOCKED: _status_blocked,
}


# ------------------ Changelog pattern generators ------------------
def _thrashing(pattern: Pattern) -> list[Suggestion]:
    return [
        Suggestion(
            type="TEAM_SYNC",
            icon="🔄",
            action="Schedule quick team sync to align on direction",
            rationale="Status changed too frequently - may indicate confusion",
            confidence=Severity.HIGH,
        )
    ]


def _ping_pong(pattern: Pattern) -> list[Suggestion]:
    return [
        Suggestion(
            type="CLARIFY_WORKFLOW",
            icon="📋",
            action="Clarify the workflow or definition of done",
            rationale="Status bouncing back and forth indicates process issues",
            confidence=Severity.HIGH,
        )
    ]


def _churn(pattern: Pattern) -> list[Suggestion]:
    return [
        Suggestion(
            type="ASSIGN_OWNER",
            icon="👑",
            action="Assign a clear owner and stick with them",
            rationale="Too many reassignments cause loss of context",
            confidence=Severity.HIGH,
        )
    ]


def _reopens(pattern: Pattern) -> list[Suggestion]:
    return [
        Suggestion(
            type="ROOT_CAUSE",
            icon="🔬",
            action="Investigate root cause of why this keeps reopening",
            rationale="Multiple reopens suggest incomplete fixes",
            confidence=Severity.CRITICAL,
        )
    ]


def _stuck(pattern: Pattern) -> list[Suggestion]:
    return [
        Suggestion(
            type="REVISIT_STATUS",
            icon="⏳",
            action=f"Confirm '{pattern.status}' is still the right status",
            rationale=f"No status change in {pattern.days} days",
            confidence=Severity.LOW,
        )
    ]


PATTERN_GENERATORS: dict[PatternType, Callable[[Pattern], list[Suggestion]]] = {
    PatternType.STATUS_THRASHING: _thrashing,
    PatternType.STATUS_PING_PONG: _ping_pong,
    PatternType.ASSIGNMENT_CHURNING: _churn,
    PatternType.MULTIPLE_REOPENS: _reopens,
    PatternType.STUCK_IN_STATUS: _stuck,
}

_missing = (set(ReasonType) - set(REASON_GENERATORS)) | (set(PatternType) - set(PATTERN_GENERATORS))
if _missing:  # pragma: no cover - guards future enum additions
    raise RuntimeError(f"No suggestion generator for: {sorted(m.value for m in _missing)}")


# ------------------ Context-level generators ------------------
def dependency_suggestions(linked_issues: Iterable[LinkedIssue]) -> list[Suggestion]:
    open_deps = [
        link
        for link in linked_issues
        if (link.relation or "").lower() == DEPENDENCY_RELATION and not is_terminal_status(link.status)
    ]
    if not open_deps:
        return []
    keys = tuple(d.key for d in open_deps)
    return [
        Suggestion(
            type="CHECK_DEPENDENCIES",
            icon="🔗",
            action=f"Check dependencies: {', '.join(keys)}",
            rationale="These dependencies may be causing delays",
            confidence=Severity.HIGH,
            keys=keys,
        )
    ]


def escalation_suggestions(priority: str | None) -> list[Suggestion]:
    name = normalize_priority_name(priority)
    if name not in ESCALATION_PRIORITIES:
        return []
    return [
        Suggestion(
            type="PRIORITY_ESCALATION",
            icon="🚨",
            action="Escalate to team lead or product owner",
            rationale=f"{name} priority issue is stalled",
            confidence=Severity.HIGH,
        )
    ]


def build_suggestions(
    ctx: AdviceContext,
    reasons: Iterable[StallReason],
    patterns: Iterable[Pattern] = (),
    *,
    limit: int = SUGGESTION_LIMIT,
) -> list[Suggestion]:
    """Pure suggestion pipeline over already-fetched context."""
    builder = SuggestionBuilder()
    for reason in reasons:
        if reason.from_pattern:
            continue
        builder.extend(REASON_GENERATORS[reason.type](reason, ctx))
    for pattern in patterns:
        builder.extend(PATTERN_GENERATORS[pattern.type](pattern))
    builder.extend(dependency_suggestions(ctx.linked_issues))
    builder.extend(escalation_suggestions(ctx.snapshot.priority))
    return builder.build(limit)


class ContextAdvisor:
    def __init__(self, source: IssueDataSource):
        self.source = source

    def gather_context(self, snapshot: IssueSnapshot) -> AdviceContext:
        """Fetch blockers, watchers and links; each failure degrades to empty."""
        _, blockers = guarded_fetch(self.source.fetch_blockers, snapshot.id, "blockers")
        _, watchers = guarded_fetch(self.source.fetch_watchers, snapshot.id, "watchers")
        _, linked = guarded_fetch(self.source.fetch_linked_issues, snapshot.id, "linked issues")
        return AdviceContext(
            snapshot=snapshot,
            blockers=tuple(blockers or ()),
            watchers=tuple(watchers or ()),
            linked_issues=tuple(linked or ()),
        )

    def suggest(
        self,
        snapshot: IssueSnapshot,
        result: StallResult,
        analysis: ChangelogAnalysis | None = None,
    ) -> list[Suggestion]:
        analysis = analysis or result.changelog_analysis
        patterns = analysis.patterns if analysis is not None else ()
        ctx = self.gather_context(snapshot)
        suggestions = build_suggestions(ctx, result.reasons, patterns)
        logger.debug("Generated %s contextual suggestions for %s", len(suggestions), snapshot.key)
        return suggestions
