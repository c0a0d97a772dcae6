"""Status normalization and categorization utilities.

Centralized status handling shared by the classifier, the advisor and the
dashboard. It uses the workflow configuration from config.py
(STATUS_ALIASES, COMMON_STATUSES, TERMINAL_STATUSES).
"""

from __future__ import annotations

from .config import COMMON_STATUSES, STATUS_ALIASES, TERMINAL_STATUSES


def clean_status_name(value: str | None) -> str:
    """Sanitize status string, converting null-like values to "Unknown".

    Parameters
    ----------
    value : str | None
        Raw status string.

    Returns
    -------
    str
        Cleaned status string or "Unknown" for empty/null values.
    """
    if not value:
        return "Unknown"
    text = str(value).strip()
    if not text:
        return "Unknown"
    if text.lower() in {"nan", "none", "null"}:
        return "Unknown"
    return text


def normalize_workflow_status(value: str | None) -> str:
    """Map raw Jira status to canonical workflow status names.

    Unlike a strict whitelist, unknown statuses are returned cleaned rather
    than collapsed, because thresholds are keyed by whatever names the
    project uses.

    Examples
    --------
    >>> normalize_workflow_status("in progress")
    'In Progress'
    >>> normalize_workflow_status("resolved")
    'Done'
    >>> normalize_workflow_status("Waiting for Vendor")
    'Waiting for Vendor'
    """
    cleaned = clean_status_name(value)
    text = cleaned.lower()
    if text in STATUS_ALIASES:
        return STATUS_ALIASES[text]
    for status in COMMON_STATUSES:
        if text == status.lower():
            return status
    return cleaned


def is_terminal_status(value: str | None) -> bool:
    """Check if status indicates a closed/terminal state (Done, Closed, ...)."""
    if not value:
        return False
    return normalize_workflow_status(value) in TERMINAL_STATUSES


def status_equals(value: str | None, expected: str) -> bool:
    """Case-insensitive, whitespace-tolerant status comparison."""
    if not value:
        return False
    return str(value).strip().lower() == expected.strip().lower()


def status_in(value: str | None, statuses) -> bool:
    return any(status_equals(value, s) for s in statuses)
