"""Central configuration, constants, feature flags, and threshold value objects."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields

# =============================================================================
# Jira Connection Settings
# =============================================================================
TIMEZONE = "UTC"
CONFIG_FILENAME = "pitstop.yaml"

# Marker embedded in every alert the app posts; used for cooldown detection.
ALERT_MARKER = "Pit Stop Alert"

# =============================================================================
# Stall Thresholds (hours)
# =============================================================================
DEFAULT_THRESHOLDS: dict[str, float] = {
    "In Progress": 48,  # 2 days
    "In Review": 24,  # 1 day
    "Code Review": 24,
    "To Do": 168,  # 1 week
    "Backlog": 336,  # 2 weeks
    "Blocked": 12,  # should be resolved quickly
    "Testing": 48,
    "QA": 48,
    "default": 72,  # any other status
}

# Used when even the "default" entry is missing from a threshold mapping
FALLBACK_THRESHOLD_HOURS: float = 72

NO_HUMAN_COMMENT_THRESHOLD_HOURS: float = 96  # 4 days
COMMENT_COOLDOWN_HOURS: float = 24
MAX_ISSUES_PER_RUN: int = 50
DASHBOARD_MAX_ISSUES: int = 100

# Pause between dashboard issues to stay under Jira rate limits
DASHBOARD_DELAY_SECONDS: float = 0.05

# =============================================================================
# Workflow Status Groups
# =============================================================================
ACTIVE_STATUSES: Sequence[str] = (
    "In Progress",
    "In Review",
    "Code Review",
    "To Do",
    "Blocked",
    "Testing",
    "QA",
)

IN_PROGRESS_STATUS = "In Progress"
BLOCKED_STATUS = "blocked"

# Statuses in which an issue must have an owner
OWNER_REQUIRED_STATUSES: frozenset[str] = frozenset({"In Progress", "In Review"})
REVIEW_STATUSES: frozenset[str] = frozenset({"In Review", "Code Review"})
BACKLOG_STATUSES: frozenset[str] = frozenset({"To Do", "Backlog"})

# Healthy issues in these statuses may receive encouragement
ENCOURAGEMENT_STATUSES: frozenset[str] = frozenset({"In Progress", "In Review", "Code Review", "Testing"})
RECENT_ACTIVITY_HOURS: float = 2

COMMON_STATUSES: Sequence[str] = (
    "To Do",
    "In Progress",
    "In Review",
    "Code Review",
    "Testing",
    "QA",
    "Blocked",
    "Done",
    "Closed",
    "Backlog",
)

# Statuses that indicate a ticket is closed/terminal
TERMINAL_STATUSES: frozenset[str] = frozenset(
    {
        "Done",
        "Closed",
        "Cancelled",
        "Duplicate",
        "Transferred",
    }
)

# Map various status strings to canonical display names
# Keys should be lowercase for case-insensitive matching
STATUS_ALIASES: dict[str, str] = {
    "to do": "To Do",
    "todo": "To Do",
    "open": "To Do",
    "new": "To Do",
    "backlog": "Backlog",
    "in progress": "In Progress",
    "inprogress": "In Progress",
    "in-progress": "In Progress",
    "in review": "In Review",
    "code review": "Code Review",
    "testing": "Testing",
    "qa": "QA",
    "blocked": "Blocked",
    "cancelled": "Cancelled",
    "canceled": "Cancelled",
    "done": "Done",
    "resolved": "Done",
    "complete": "Done",
    "completed": "Done",
    "closed": "Closed",
    "duplicate": "Duplicate",
    "transferred": "Transferred",
}

# Issue older than this (days) with no comment at all is flagged
NO_COMMENTS_MIN_AGE_DAYS: float = 2

ESCALATION_PRIORITIES: frozenset[str] = frozenset({"Critical", "Highest"})
DEPENDENCY_RELATION = "depends on"

# =============================================================================
# Changelog Signal / Noise
# =============================================================================
# Lowercase substrings of display names that identify automation accounts
BOT_NAME_PATTERNS: Sequence[str] = (
    "automation",
    "bot",
    "jira",
    "service",
    "system",
    "[bot]",
    "forge-app",
)
BOT_ACCOUNT_TYPES: frozenset[str] = frozenset({"app", "system"})
HUMAN_ACCOUNT_TYPE = "atlassian"

MEANINGFUL_FIELDS: frozenset[str] = frozenset(
    {
        "status",
        "assignee",
        "priority",
        "resolution",
        "Sprint",
        "Fix Version",
        "labels",
        "description",
    }
)

NOISE_FIELDS: frozenset[str] = frozenset(
    {
        "Rank",
        "timeestimate",
        "timespent",
        "worklog",
        "attachment",
    }
)

# =============================================================================
# Pattern Detection Windows
# =============================================================================
THRASHING_MIN_CHANGES = 5
THRASHING_WINDOW_HOURS = 48
PING_PONG_MIN_CHANGES = 3
PING_PONG_LOOKBACK = 5
CHURN_MIN_ASSIGNMENTS = 3
CHURN_WINDOW_HOURS = 168
REOPEN_MIN_COUNT = 2
REOPEN_MARKERS: Sequence[str] = ("open", "reopened")
STUCK_MIN_HOURS = 168

# =============================================================================
# Output Limits
# =============================================================================
SUGGESTION_LIMIT = 5
NOTABLE_STALLED_LIMIT = 10

# Canonical field list for Jira snapshot fetches
JIRA_SNAPSHOT_FIELDS = [
    "summary",
    "status",
    "assignee",
    "reporter",
    "priority",
    "created",
    "updated",
    "issuelinks",
]


@dataclass(frozen=True, slots=True)
class ThresholdConfig:
    """Per-status inactivity thresholds in hours, with a ``default`` entry."""

    hours: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_THRESHOLDS))

    def for_status(self, status: str | None) -> float:
        value = self.hours.get(status) if status else None
        if not value:
            value = self.hours.get("default")
        if not value:
            value = FALLBACK_THRESHOLD_HOURS
        return float(value)

    def as_dict(self) -> dict[str, float]:
        return dict(self.hours)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object] | None) -> ThresholdConfig:
        if not data:
            return cls()
        return cls({str(k): float(v) for k, v in data.items() if v is not None})


@dataclass(frozen=True, slots=True)
class FeatureToggles:
    detect_no_activity: bool = True
    detect_no_human_comments: bool = True
    detect_unassigned: bool = True
    detect_blockers: bool = True
    detect_assigned_not_progressing: bool = True
    use_changelog_analysis: bool = True
    use_contextual_suggestions: bool = True
    post_comments: bool = True
    post_stall_warnings: bool = True
    post_encouragement: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_mapping(cls, data: Mapping[str, object] | None) -> FeatureToggles:
        known = {f.name for f in fields(cls)}
        values = {k: bool(v) for k, v in (data or {}).items() if k in known}
        return cls(**values)


@dataclass(frozen=True, slots=True)
class Settings:
    no_human_comment_threshold_hours: float = NO_HUMAN_COMMENT_THRESHOLD_HOURS
    comment_cooldown_hours: float = COMMENT_COOLDOWN_HOURS
    max_issues_per_run: int = MAX_ISSUES_PER_RUN
    active_statuses: tuple[str, ...] = tuple(ACTIVE_STATUSES)
    features: FeatureToggles = field(default_factory=FeatureToggles)

    def as_dict(self) -> dict[str, object]:
        return {
            "no_human_comment_threshold_hours": self.no_human_comment_threshold_hours,
            "comment_cooldown_hours": self.comment_cooldown_hours,
            "max_issues_per_run": self.max_issues_per_run,
            "active_statuses": list(self.active_statuses),
            "features": self.features.as_dict(),
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, object] | None) -> Settings:
        if not data:
            return cls()
        defaults = cls()
        statuses = data.get("active_statuses")
        return cls(
            no_human_comment_threshold_hours=float(
                data.get("no_human_comment_threshold_hours", defaults.no_human_comment_threshold_hours)
            ),
            comment_cooldown_hours=float(data.get("comment_cooldown_hours", defaults.comment_cooldown_hours)),
            max_issues_per_run=int(data.get("max_issues_per_run", defaults.max_issues_per_run)),
            active_statuses=tuple(statuses) if statuses else defaults.active_statuses,
            features=FeatureToggles.from_mapping(data.get("features")),  # type: ignore[arg-type]
        )


# =============================================================================
# Priority Configuration
# =============================================================================
# Priority aliases for normalization (lowercase keys)
PRIORITY_ALIASES: dict[str, str] = {
    "highest": "Highest",
    "blocker": "Blocker",
    "critical": "Critical",
    "high": "High",
    "medium": "Medium",
    "low": "Low",
    "lowest": "Lowest",
    "none": "Undefined",
}


def normalize_priority_name(priority: str | None) -> str:
    """Normalize a priority name to its canonical form.

    Handles variations like:
    - "(migrated)" suffixes: "Critical (migrated)" -> "Critical"
    - Case variations: "HIGHEST" -> "Highest"
    - Whitespace: "  Medium  " -> "Medium"
    """
    if priority is None:
        return "Undefined"
    cleaned = str(priority).strip()
    if not cleaned:
        return "Undefined"
    cleaned = re.sub(r"\s*\(migrated\)\s*$", "", cleaned, flags=re.IGNORECASE).strip()
    return PRIORITY_ALIASES.get(cleaned.lower(), cleaned)
