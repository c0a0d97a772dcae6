"""Domain data models for issue snapshots, change histories, and stall verdicts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum


class Severity(IntEnum):
    """Ordinal urgency shared by stall reasons and suggestion confidence."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


# Suggestions rank on the same scale
Confidence = Severity


class PatternType(Enum):
    STATUS_THRASHING = "STATUS_THRASHING"
    STATUS_PING_PONG = "STATUS_PING_PONG"
    ASSIGNMENT_CHURNING = "ASSIGNMENT_CHURNING"
    MULTIPLE_REOPENS = "MULTIPLE_REOPENS"
    STUCK_IN_STATUS = "STUCK_IN_STATUS"


class ReasonType(Enum):
    NO_ACTIVITY = "NO_ACTIVITY"
    NO_HUMAN_INTERACTION = "NO_HUMAN_INTERACTION"
    NO_COMMENTS = "NO_COMMENTS"
    ASSIGNED_NOT_PROGRESSING = "ASSIGNED_NOT_PROGRESSING"
    UNASSIGNED_ACTIVE = "UNASSIGNED_ACTIVE"
    HAS_BLOCKERS = "HAS_BLOCKERS"
    STATUS_BLOCKED = "STATUS_BLOCKED"


@dataclass(frozen=True, slots=True)
class Identity:
    account_id: str | None
    display_name: str | None
    account_type: str | None = None
    active: bool = True

    @property
    def name(self) -> str:
        return self.display_name or "Unknown"


@dataclass(frozen=True, slots=True)
class IssueLink:
    """One relationship edge as seen from the issue that owns it."""

    key: str
    link_type: str | None
    relation: str | None
    direction: str  # "inward" or "outward"
    status: str | None = None


@dataclass(frozen=True, slots=True)
class IssueSnapshot:
    id: str
    key: str
    status: str
    created: datetime | None
    updated: datetime | None
    assignee: Identity | None = None
    reporter: Identity | None = None
    priority: str | None = None
    summary: str | None = None
    links: tuple[IssueLink, ...] = ()


@dataclass(frozen=True, slots=True)
class ChangeItem:
    field: str | None
    field_type: str | None
    from_value: str | None
    to_value: str | None


@dataclass(frozen=True, slots=True)
class ChangelogEntry:
    """A batch of simultaneous field edits made by one author."""

    author: Identity | None
    created: datetime
    items: tuple[ChangeItem, ...] = ()


@dataclass(frozen=True, slots=True)
class HumanComment:
    created: datetime
    author: str


@dataclass(frozen=True, slots=True)
class LinkedIssue:
    key: str
    relation: str | None
    status: str | None


@dataclass(frozen=True, slots=True)
class TimelineEvent:
    date: datetime
    field: str | None
    from_value: str | None
    to_value: str | None
    author: str


@dataclass(frozen=True, slots=True)
class Pattern:
    type: PatternType
    severity: Severity
    message: str
    evidence: tuple[TimelineEvent, ...] = ()
    count: int = 0
    status: str | None = None
    days: int | None = None
    values: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ChangelogAnalysis:
    last_meaningful_update: datetime | None = None
    last_meaningful_update_by: str | None = None
    total_changes: int = 0
    meaningful_changes: int = 0
    noise_changes: int = 0
    timeline: tuple[TimelineEvent, ...] = ()
    status_changes: tuple[TimelineEvent, ...] = ()
    assignments: tuple[TimelineEvent, ...] = ()
    patterns: tuple[Pattern, ...] = ()
    thrashing: bool = False


@dataclass(frozen=True, slots=True)
class StallReason:
    """A triggered detector, or a changelog pattern promoted into a reason."""

    type: ReasonType | PatternType
    severity: Severity
    message: str
    hours: int | None = None
    threshold: float | None = None
    days: int | None = None
    blockers: tuple[str, ...] = ()
    assignee: str | None = None
    last_author: str | None = None
    status: str | None = None

    @property
    def from_pattern(self) -> bool:
        return isinstance(self.type, PatternType)

    @classmethod
    def from_changelog_pattern(cls, pattern: Pattern) -> StallReason:
        return cls(
            type=pattern.type,
            severity=pattern.severity,
            message=pattern.message,
            days=pattern.days,
            status=pattern.status,
        )


@dataclass(frozen=True, slots=True)
class Suggestion:
    type: str
    icon: str
    action: str
    rationale: str
    confidence: Confidence
    users: tuple[Identity, ...] = ()
    keys: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StallResult:
    is_stalled: bool
    severity: Severity | None
    reasons: tuple[StallReason, ...] = ()
    summary: str = "No stall detected"
    insights: tuple[str, ...] = ()
    suggestions: tuple[Suggestion, ...] = ()
    changelog_analysis: ChangelogAnalysis | None = None
    issue_key: str | None = None

    @property
    def reason_types(self) -> list[str]:
        return [r.type.value for r in self.reasons]


@dataclass(slots=True)
class StatusCounts:
    total: int = 0
    stalled: int = 0
    healthy: int = 0


@dataclass(frozen=True, slots=True)
class StalledIssueSummary:
    key: str
    status: str
    assignee: str
    hours_since_update: int
    severity: Severity
    reasons: tuple[str, ...] = ()


@dataclass(slots=True)
class DashboardMetrics:
    total_issues: int = 0
    stalled_issues: int = 0
    healthy_issues: int = 0
    failed_issues: int = 0
    by_status: dict[str, StatusCounts] = field(default_factory=dict)
    by_assignee: dict[str, StatusCounts] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=lambda: {s.name: 0 for s in reversed(Severity)})
    stall_reasons: dict[str, int] = field(default_factory=dict)
    average_stall_hours: int = 0
    longest_stalled: StalledIssueSummary | None = None
    recently_stalled: list[StalledIssueSummary] = field(default_factory=list)

    @classmethod
    def empty(cls) -> DashboardMetrics:
        return cls()
