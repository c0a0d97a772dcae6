from datetime import UTC, datetime, timedelta

from pitstop_app.analytics.classifier import StallClassifier, highest_severity, summarize
from pitstop_app.core.config import FeatureToggles, Settings, ThresholdConfig
from pitstop_app.core.models import (
    ChangelogAnalysis,
    HumanComment,
    Identity,
    IssueSnapshot,
    Pattern,
    PatternType,
    ReasonType,
    Severity,
    StallReason,
)

NOW = datetime(2024, 9, 10, 12, 0, tzinfo=UTC)
ALICE = Identity("u-1", "Alice", "atlassian")
RECENT_COMMENT = HumanComment(created=NOW - timedelta(hours=1), author="Bob")


def _sample_snapshot(status="In Progress", *, updated_hours=1, age_days=10, assignee=ALICE, **kwargs):
    return IssueSnapshot(
        id="10001",
        key="PIT-1",
        status=status,
        created=NOW - timedelta(days=age_days),
        updated=NOW - timedelta(hours=updated_hours),
        assignee=assignee,
        **kwargs,
    )


def _classifier(source, *, thresholds=None, **features):
    settings = Settings(features=FeatureToggles(**features))
    return StallClassifier(source, thresholds or ThresholdConfig(), settings)


def _reason(result, kind):
    return next(r for r in result.reasons if r.type is kind)


def test_in_progress_past_threshold_with_assignee(fake_source):
    source = fake_source(comment=RECENT_COMMENT)
    result = _classifier(source).classify(_sample_snapshot(updated_hours=50), now=NOW)

    assert result.is_stalled
    assert result.reason_types == ["NO_ACTIVITY", "ASSIGNED_NOT_PROGRESSING"]
    no_activity = _reason(result, ReasonType.NO_ACTIVITY)
    assert no_activity.severity is Severity.MEDIUM
    assert no_activity.hours == 50
    assert no_activity.threshold == 48
    assert no_activity.message == "No activity in 'In Progress' for 50 hours (threshold: 48h)"
    assert _reason(result, ReasonType.ASSIGNED_NOT_PROGRESSING).severity is Severity.HIGH
    assert result.severity is Severity.HIGH
    assert result.summary == "⚠️ High Priority: Assigned to Alice but no progress in 50 hours"


def test_no_activity_escalates_past_double_threshold(fake_source):
    source = fake_source(comment=RECENT_COMMENT)
    result = _classifier(source, detect_assigned_not_progressing=False).classify(
        _sample_snapshot(updated_hours=97), now=NOW
    )
    assert _reason(result, ReasonType.NO_ACTIVITY).severity is Severity.HIGH


def test_meaningful_update_overrides_snapshot_updated(fake_source):
    source = fake_source(comment=RECENT_COMMENT)
    analysis = ChangelogAnalysis(last_meaningful_update=NOW - timedelta(hours=50), meaningful_changes=1)
    snap = _sample_snapshot(updated_hours=1)

    result = _classifier(source).classify(snap, analysis, now=NOW)
    assert ReasonType.NO_ACTIVITY.value in result.reason_types
    assert result.changelog_analysis is analysis

    ignored = _classifier(source, use_changelog_analysis=False).classify(snap, analysis, now=NOW)
    assert not ignored.is_stalled
    assert ignored.changelog_analysis is None


def test_in_review_without_assignee(fake_source):
    source = fake_source(comment=RECENT_COMMENT)
    result = _classifier(source).classify(_sample_snapshot("In Review", assignee=None), now=NOW)
    assert result.reason_types == ["UNASSIGNED_ACTIVE"]
    assert result.severity is Severity.HIGH


def test_blocked_status_is_critical_regardless_of_threshold(fake_source):
    source = fake_source(comment=RECENT_COMMENT)
    snap = _sample_snapshot("Blocked", updated_hours=20)

    result = _classifier(source).classify(snap, now=NOW)
    blocked = _reason(result, ReasonType.STATUS_BLOCKED)
    assert blocked.severity is Severity.CRITICAL
    assert blocked.hours == 20
    assert result.severity is Severity.CRITICAL
    assert result.summary.startswith("🚨 Critical:")

    lenient = ThresholdConfig({"Blocked": 1000, "default": 1000})
    quiet = _classifier(
        source,
        thresholds=lenient,
        detect_no_activity=False,
        detect_no_human_comments=False,
        detect_unassigned=False,
        detect_blockers=False,
        detect_assigned_not_progressing=False,
    ).classify(snap, now=NOW)
    assert quiet.reason_types == ["STATUS_BLOCKED"]


def test_lowercase_blocked_status_matches(fake_source):
    result = _classifier(fake_source(comment=RECENT_COMMENT)).classify(_sample_snapshot("blocked"), now=NOW)
    assert "STATUS_BLOCKED" in result.reason_types


def test_no_comments_on_three_day_old_issue(fake_source):
    source = fake_source(comment=None)
    result = _classifier(source).classify(_sample_snapshot("To Do", age_days=3), now=NOW)
    assert result.reason_types == ["NO_COMMENTS"]
    reason = result.reasons[0]
    assert reason.severity is Severity.MEDIUM
    assert reason.days == 3


def test_young_issue_without_comments_is_healthy(fake_source):
    result = _classifier(fake_source(comment=None)).classify(_sample_snapshot("To Do", age_days=1), now=NOW)
    assert not result.is_stalled
    assert result.severity is None
    assert result.reasons == ()
    assert result.summary == "No stall detected"


def test_silent_humans_trigger_no_human_interaction(fake_source):
    comment = HumanComment(created=NOW - timedelta(hours=100), author="Bob")
    result = _classifier(fake_source(comment=comment)).classify(_sample_snapshot("To Do"), now=NOW)
    reason = _reason(result, ReasonType.NO_HUMAN_INTERACTION)
    assert reason.severity is Severity.MEDIUM
    assert reason.last_author == "Bob"
    assert reason.hours == 100
    assert "NO_COMMENTS" not in result.reason_types


def test_failed_comment_lookup_is_not_mistaken_for_silence(fake_source):
    source = fake_source(fail={"comment"})
    result = _classifier(source).classify(_sample_snapshot("To Do", age_days=30), now=NOW)
    assert not result.is_stalled


def test_blockers_reported_as_critical(fake_source):
    source = fake_source(comment=RECENT_COMMENT, blockers=["A-1", "A-2"])
    result = _classifier(source).classify(_sample_snapshot("To Do"), now=NOW)
    blockers = _reason(result, ReasonType.HAS_BLOCKERS)
    assert blockers.blockers == ("A-1", "A-2")
    assert result.summary == "🚨 Critical: Blocked by 2 issue(s): A-1, A-2"
    assert "Resolve blockers first: A-1, A-2" in result.insights


def test_failed_blocker_lookup_degrades_single_detector(fake_source):
    source = fake_source(comment=None, fail={"blockers"})
    result = _classifier(source).classify(_sample_snapshot("To Do", age_days=5), now=NOW)
    assert result.reason_types == ["NO_COMMENTS"]


def test_patterns_are_promoted_into_reasons(fake_source):
    pattern = Pattern(type=PatternType.MULTIPLE_REOPENS, severity=Severity.HIGH, message="Issue reopened 2 times")
    analysis = ChangelogAnalysis(patterns=(pattern,))
    source = fake_source(comment=RECENT_COMMENT)

    result = _classifier(source).classify(_sample_snapshot("To Do"), analysis, now=NOW)
    assert result.reason_types == ["MULTIPLE_REOPENS"]
    promoted = result.reasons[0]
    assert promoted.from_pattern
    assert promoted.message == pattern.message
    assert result.severity is Severity.HIGH


def test_detectors_run_independently(fake_source):
    source = fake_source(comment=None, blockers=["B-9"])
    snap = _sample_snapshot("In Progress", updated_hours=200, age_days=20)
    result = _classifier(source).classify(snap, now=NOW)
    assert set(result.reason_types) == {"NO_ACTIVITY", "NO_COMMENTS", "ASSIGNED_NOT_PROGRESSING", "HAS_BLOCKERS"}


def test_severity_is_max_over_reasons():
    reasons = tuple(
        StallReason(type=ReasonType.NO_ACTIVITY, severity=s, message=s.name)
        for s in (Severity.MEDIUM, Severity.CRITICAL, Severity.HIGH)
    )
    assert highest_severity(reasons) is Severity.CRITICAL
    assert highest_severity(()) is None
    assert summarize(reasons) == "🚨 Critical: CRITICAL"


def test_summary_uses_first_reason_at_top_severity():
    reasons = (
        StallReason(type=ReasonType.NO_COMMENTS, severity=Severity.MEDIUM, message="first"),
        StallReason(type=ReasonType.NO_ACTIVITY, severity=Severity.MEDIUM, message="second"),
    )
    assert summarize(reasons) == "⏰ Attention Needed: first"
