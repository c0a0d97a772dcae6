import random
from datetime import UTC, datetime, timedelta

from pitstop_app.core.models import (
    ChangelogAnalysis,
    Pattern,
    PatternType,
    ReasonType,
    Severity,
    StallReason,
    StallResult,
    Suggestion,
)
from pitstop_app.visual.messages import (
    format_changelog_insights,
    format_smart_response,
    format_stall_message,
    format_suggestions,
)
from pitstop_app.visual.phrasing import ENCOURAGEMENTS, FixedPhrasing, RandomPhrasing

NOW = datetime(2024, 9, 10, 12, 0, tzinfo=UTC)

REASONS = (
    StallReason(type=ReasonType.HAS_BLOCKERS, severity=Severity.CRITICAL, message="Blocked by 1 issue(s): A-1", blockers=("A-1",)),
    StallReason(type=ReasonType.NO_ACTIVITY, severity=Severity.MEDIUM, message="No activity", hours=50),
)
SUGGESTIONS = (
    Suggestion(type="RESOLVE_BLOCKER", icon="🔓", action="Check blocker A-1", rationale="Must go first", confidence=Severity.CRITICAL),
)


def _stalled(**kwargs):
    return StallResult(
        is_stalled=True,
        severity=Severity.CRITICAL,
        reasons=REASONS,
        summary="🚨 Critical: Blocked by 1 issue(s): A-1",
        insights=("Resolve blockers first: A-1",),
        **kwargs,
    )


def test_healthy_result_has_no_message():
    assert format_stall_message(StallResult(is_stalled=False, severity=None), "PIT-1") is None


def test_stall_message_structure():
    message = format_stall_message(_stalled(suggestions=SUGGESTIONS), "PIT-1")
    lines = message.splitlines()
    assert lines[0] == "🏎️ **Pit Stop Alert** - PIT-1"
    assert "🚨 Critical: Blocked by 1 issue(s): A-1" in lines
    assert "**Issues Detected:**" in lines
    assert "🚨 Blocked by 1 issue(s): A-1" in lines
    assert "⏰ No activity" in lines
    assert "**💡 Suggested Actions:**" in lines
    assert "🔓 Check blocker A-1" in lines
    assert message.index("**Issues Detected:**") < message.index("Suggested Actions")


def test_stall_message_falls_back_to_insights():
    message = format_stall_message(_stalled(), "PIT-1")
    assert "**Suggested Actions:**\nResolve blockers first: A-1" in message


def test_format_suggestions():
    assert format_suggestions([]) == ""
    assert format_suggestions(SUGGESTIONS) == "**💡 Suggested Actions:**\n🔓 Check blocker A-1\n   _Must go first_\n"


def test_changelog_insights():
    assert format_changelog_insights(None) is None
    assert format_changelog_insights(ChangelogAnalysis()) is None

    pattern = Pattern(type=PatternType.STATUS_THRASHING, severity=Severity.HIGH, message="Status changed 5 times")
    analysis = ChangelogAnalysis(
        last_meaningful_update=NOW - timedelta(hours=50),
        last_meaningful_update_by="Alice",
        meaningful_changes=3,
        patterns=(pattern,),
    )
    text = format_changelog_insights(analysis, now=NOW)
    assert text.startswith("**⚠️ Patterns Detected:**\n🚨 Status changed 5 times\n")
    assert text.endswith("📊 Last meaningful update: 2 day(s) ago by Alice\n")

    fresh = ChangelogAnalysis(
        last_meaningful_update=NOW - timedelta(hours=5), last_meaningful_update_by="Bob", meaningful_changes=1
    )
    assert format_changelog_insights(fresh, now=NOW) == "📊 Last meaningful update: 5 hour(s) ago by Bob\n"


def test_smart_response_is_conversational():
    text = format_smart_response(_stalled(), author_name="Carol", status="In Progress", assignee="Alice")
    lines = text.splitlines()
    assert lines[0] == "🏎️ **Pit Stop Alert** - Thanks for the update, Carol!"
    assert lines[2] == "🚨 This issue needs immediate attention:"
    assert "🚨 ⛔ Blocked by: A-1 - these need to be resolved first" in lines
    assert "⏰ This issue has been in 'In Progress' for 50 hours without updates" in lines
    assert "**What you can do:**" in lines
    assert lines[-1].startswith("_💡 Tip:")


def test_smart_response_medium_opening():
    result = StallResult(is_stalled=True, severity=Severity.MEDIUM, reasons=REASONS[1:])
    text = format_smart_response(result, author_name="Carol", status="To Do")
    assert "⏰ Just a friendly heads-up:" in text
    assert "**What you can do:**" not in text


def test_phrasing_strategies():
    assert FixedPhrasing().encouragement("Testing", "Dana") == "🧪 In testing - great progress! Almost there!"
    assert FixedPhrasing().encouragement("Unknown", "Dana") == "👍 Keep up the good work, Dana!"
    assert FixedPhrasing(4).encouragement("Testing", "Dana") == "🧪 In testing - great progress! Almost there!"
    options = {line.format(author="Dana") for line in ENCOURAGEMENTS["In Review"]}
    assert RandomPhrasing(random.Random(7)).encouragement("In Review", "Dana") in options
