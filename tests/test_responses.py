from datetime import UTC, datetime, timedelta

from pitstop_app.core.config import FeatureToggles
from pitstop_app.core.models import Identity, IssueSnapshot, Severity, StallResult
from pitstop_app.core.responses import (
    ResponseKind,
    comment_text,
    decide_comment_response,
    has_recent_alert,
    should_encourage,
    should_post_comment,
)

NOW = datetime(2024, 9, 10, 12, 0, tzinfo=UTC)
APP_ID = "app-1"
ALICE = Identity("u-1", "Alice", "atlassian")
STALLED = StallResult(is_stalled=True, severity=Severity.HIGH)
HEALTHY = StallResult(is_stalled=False, severity=None)


def _adf(text):
    return {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}]}


def _comment(hours_ago, body, author=APP_ID):
    return {
        "author": {"accountId": author},
        "created": (NOW - timedelta(hours=hours_ago)).isoformat(),
        "body": body,
    }


def _sample_snapshot(status="In Progress", *, updated_hours=10, assignee=ALICE):
    return IssueSnapshot(
        id="1",
        key="PIT-1",
        status=status,
        created=NOW - timedelta(days=5),
        updated=NOW - timedelta(hours=updated_hours),
        assignee=assignee,
    )


def test_comment_text_flattens_documents():
    assert comment_text(_adf("🏎️ **Pit Stop Alert** - PIT-1")) == "🏎️ **Pit Stop Alert** - PIT-1"
    assert comment_text("plain") == "plain"
    assert comment_text(None) == ""


def test_recent_alert_within_cooldown_blocks_posting():
    comments = [_comment(3, _adf("🏎️ **Pit Stop Alert** - PIT-1"))]
    assert has_recent_alert(comments, APP_ID, cooldown_hours=24, now=NOW)
    assert not should_post_comment(comments, APP_ID, cooldown_hours=24, now=NOW)


def test_old_or_foreign_or_unmarked_comments_do_not_block():
    comments = [
        _comment(30, "🏎️ **Pit Stop Alert** - PIT-1"),
        _comment(1, "Pit Stop Alert quoted by a human", author="u-1"),
        _comment(1, _adf("Thanks for the update")),
    ]
    assert should_post_comment(comments, APP_ID, cooldown_hours=24, now=NOW)
    assert should_post_comment(comments, None, now=NOW)


def test_encouragement_rules():
    assert should_encourage(_sample_snapshot(), "u-1", now=NOW)
    assert should_encourage(_sample_snapshot(updated_hours=1), "u-9", now=NOW)
    assert not should_encourage(_sample_snapshot(), "u-9", now=NOW)
    assert not should_encourage(_sample_snapshot("To Do"), "u-1", now=NOW)


def test_stalled_issue_gets_warning_when_enabled():
    features = FeatureToggles()
    kind = decide_comment_response(
        _sample_snapshot(), STALLED, author_id="u-9", app_account_id=APP_ID, features=features, now=NOW
    )
    assert kind is ResponseKind.STALL_WARNING

    muted = FeatureToggles(post_stall_warnings=False)
    assert (
        decide_comment_response(_sample_snapshot(), STALLED, author_id="u-9", app_account_id=APP_ID, features=muted)
        is ResponseKind.NONE
    )


def test_healthy_issue_encouragement_is_opt_in():
    snap = _sample_snapshot()
    default = decide_comment_response(
        snap, HEALTHY, author_id="u-1", app_account_id=APP_ID, features=FeatureToggles(), now=NOW
    )
    assert default is ResponseKind.NONE
    enabled = decide_comment_response(
        snap,
        HEALTHY,
        author_id="u-1",
        app_account_id=APP_ID,
        features=FeatureToggles(post_encouragement=True),
        now=NOW,
    )
    assert enabled is ResponseKind.ENCOURAGEMENT


def test_never_answers_itself_or_when_posting_disabled():
    snap = _sample_snapshot()
    assert (
        decide_comment_response(snap, STALLED, author_id=APP_ID, app_account_id=APP_ID, features=FeatureToggles())
        is ResponseKind.NONE
    )
    assert (
        decide_comment_response(
            snap, STALLED, author_id="u-9", app_account_id=APP_ID, features=FeatureToggles(post_comments=False)
        )
        is ResponseKind.NONE
    )
