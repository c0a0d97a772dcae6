"""Decide how to react when someone comments on an issue.

Only the decision lives here (warn, encourage, or stay silent, plus the
cooldown check against our own recent alerts). Wording is chosen by the
formatters in ``pitstop_app.visual`` and posting is up to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Any

import pytz

from .config import ALERT_MARKER, COMMENT_COOLDOWN_HOURS, ENCOURAGEMENT_STATUSES, RECENT_ACTIVITY_HOURS, FeatureToggles
from .mappers import parse_dt
from .models import IssueSnapshot, StallResult
from .status import status_in

logger = logging.getLogger(__name__)


class ResponseKind(Enum):
    STALL_WARNING = "STALL_WARNING"
    ENCOURAGEMENT = "ENCOURAGEMENT"
    NONE = "NONE"


def comment_text(body: Any) -> str:
    """Flatten a comment body (plain string or Atlassian document) to text."""
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    if isinstance(body, dict):
        text = body.get("text") or ""
        return text + "".join(comment_text(child) for child in body.get("content") or [])
    if isinstance(body, list):
        return "".join(comment_text(child) for child in body)
    return ""


def has_recent_alert(
    comments: Iterable[dict[str, Any]],
    app_account_id: str | None,
    *,
    cooldown_hours: float = COMMENT_COOLDOWN_HOURS,
    now: datetime | None = None,
) -> bool:
    """True when the app posted an alert on this issue inside the cooldown window."""
    if not app_account_id:
        return False
    now = now or datetime.now(tz=pytz.UTC)
    for comment in comments:
        author = comment.get("author") or {}
        if author.get("accountId") != app_account_id:
            continue
        created = parse_dt(comment.get("created"))
        if created is None or (now - created).total_seconds() / 3600.0 >= cooldown_hours:
            continue
        if ALERT_MARKER in comment_text(comment.get("body")):
            return True
    return False


def should_post_comment(
    comments: Iterable[dict[str, Any]],
    app_account_id: str | None,
    *,
    cooldown_hours: float = COMMENT_COOLDOWN_HOURS,
    now: datetime | None = None,
) -> bool:
    return not has_recent_alert(comments, app_account_id, cooldown_hours=cooldown_hours, now=now)


def should_encourage(snapshot: IssueSnapshot, author_id: str | None, *, now: datetime | None = None) -> bool:
    """Healthy, actively worked issues earn encouragement.

    The status must be an active work status, and either the commenter is the
    assignee or the issue was updated within the last couple of hours.
    """
    if not status_in(snapshot.status, ENCOURAGEMENT_STATUSES):
        return False
    assignee = snapshot.assignee
    if assignee is not None and author_id and assignee.account_id == author_id:
        return True
    if snapshot.updated is None:
        return False
    now = now or datetime.now(tz=pytz.UTC)
    return (now - snapshot.updated).total_seconds() / 3600.0 < RECENT_ACTIVITY_HOURS


def decide_comment_response(
    snapshot: IssueSnapshot,
    result: StallResult,
    *,
    author_id: str | None,
    app_account_id: str | None,
    features: FeatureToggles,
    now: datetime | None = None,
) -> ResponseKind:
    if app_account_id and author_id == app_account_id:
        logger.debug("Skipping %s: comment is our own", snapshot.key)
        return ResponseKind.NONE
    if not features.post_comments:
        return ResponseKind.NONE
    if result.is_stalled:
        return ResponseKind.STALL_WARNING if features.post_stall_warnings else ResponseKind.NONE
    if features.post_encouragement and should_encourage(snapshot, author_id, now=now):
        return ResponseKind.ENCOURAGEMENT
    return ResponseKind.NONE
