"""Plain-text renderings of stall verdicts for posting as issue comments."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

import pytz

from pitstop_app.core.config import ALERT_MARKER
from pitstop_app.core.models import ChangelogAnalysis, ReasonType, Severity, StallReason, StallResult, Suggestion

SEVERITY_GLYPHS = {
    Severity.CRITICAL: "🚨",
    Severity.HIGH: "⚠️",
}
DEFAULT_GLYPH = "⏰"

SMART_OPENINGS = {
    Severity.CRITICAL: "🚨 This issue needs immediate attention:",
    Severity.HIGH: "⚠️ I noticed this issue might be stalled:",
}
DEFAULT_OPENING = "⏰ Just a friendly heads-up:"

ALERT_HEADER = f"🏎️ **{ALERT_MARKER}**"
TIP_FOOTER = "_💡 Tip: Update the status or add a comment to keep things moving!_"


def severity_glyph(severity: Severity | None) -> str:
    return SEVERITY_GLYPHS.get(severity, DEFAULT_GLYPH)


def format_suggestions(suggestions: Iterable[Suggestion]) -> str:
    """Suggested-actions block, one action per line with its rationale below."""
    lines: list[str] = []
    for s in suggestions:
        lines.append(f"{s.icon} {s.action}")
        if s.rationale:
            lines.append(f"   _{s.rationale}_")
    if not lines:
        return ""
    return "**💡 Suggested Actions:**\n" + "\n".join(lines) + "\n"


def format_stall_message(result: StallResult, issue_key: str) -> str | None:
    """Summary line, reasons block and suggestions block; ``None`` when healthy."""
    if not result.is_stalled:
        return None
    parts = [f"{ALERT_HEADER} - {issue_key}\n", f"{result.summary}\n"]
    if len(result.reasons) > 1:
        reasons = "\n".join(f"{severity_glyph(r.severity)} {r.message}" for r in result.reasons)
        parts.append(f"**Issues Detected:**\n{reasons}\n")
    if result.suggestions:
        parts.append(format_suggestions(result.suggestions))
    elif result.insights:
        parts.append("**Suggested Actions:**\n" + "\n".join(result.insights) + "\n")
    return "\n".join(parts)


def format_changelog_insights(analysis: ChangelogAnalysis | None, *, now: datetime | None = None) -> str | None:
    if analysis is None or analysis.meaningful_changes == 0:
        return None
    message = ""
    if analysis.patterns:
        message += "**⚠️ Patterns Detected:**\n"
        for pattern in analysis.patterns:
            glyph = "🚨" if pattern.severity == Severity.HIGH else "⚠️"
            message += f"{glyph} {pattern.message}\n"
        message += "\n"
    if analysis.last_meaningful_update is not None:
        now = now or datetime.now(tz=pytz.UTC)
        hours = (now - analysis.last_meaningful_update).total_seconds() / 3600.0
        days = math.floor(hours / 24)
        by = analysis.last_meaningful_update_by
        if days > 0:
            message += f"📊 Last meaningful update: {days} day(s) ago by {by}\n"
        else:
            message += f"📊 Last meaningful update: {math.floor(hours)} hour(s) ago by {by}\n"
    return message


def _conversational(reason: StallReason, status: str | None, assignee: str | None) -> str:
    if reason.type is ReasonType.NO_ACTIVITY:
        return f"This issue has been in '{status}' for {reason.hours} hours without updates"
    if reason.type is ReasonType.HAS_BLOCKERS:
        return f"⛔ Blocked by: {', '.join(reason.blockers)} - these need to be resolved first"
    if reason.type is ReasonType.ASSIGNED_NOT_PROGRESSING and assignee:
        return f"No progress since assigned to {assignee}. Need any help?"
    return reason.message


def format_smart_response(
    result: StallResult,
    *,
    author_name: str,
    status: str | None,
    assignee: str | None = None,
) -> str:
    """Conversational reply to a comment on a stalled issue."""
    lines = [
        f"{ALERT_HEADER} - Thanks for the update, {author_name}!",
        "",
        SMART_OPENINGS.get(result.severity, DEFAULT_OPENING),
        "",
    ]
    lines.extend(f"{severity_glyph(r.severity)} {_conversational(r, status, assignee)}" for r in result.reasons)
    lines.append("")
    if result.insights:
        lines.append("**What you can do:**")
        lines.extend(result.insights)
        lines.append("")
    lines.append(TIP_FOOTER)
    return "\n".join(lines)
