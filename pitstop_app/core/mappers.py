"""Mapping raw Jira issue JSON into snapshot, changelog, and relationship models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

import pandas as pd

from .config import HUMAN_ACCOUNT_TYPE
from .models import (
    ChangeItem,
    ChangelogEntry,
    HumanComment,
    Identity,
    IssueLink,
    IssueSnapshot,
    LinkedIssue,
)

BLOCKS_LINK_NAME = "Blocks"
BLOCKED_BY_RELATION = "is blocked by"


def parse_dt(val) -> datetime | None:
    if not val:
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def map_identity(raw: dict[str, Any] | None) -> Identity | None:
    if not raw:
        return None
    return Identity(
        account_id=raw.get("accountId"),
        display_name=raw.get("displayName"),
        account_type=raw.get("accountType"),
        active=bool(raw.get("active", True)),
    )


def map_links(raw_links: Iterable[dict[str, Any]] | None) -> tuple[IssueLink, ...]:
    """Flatten ``issuelinks`` into edges seen from the owning issue."""
    links: list[IssueLink] = []
    for link in raw_links or []:
        link_type = link.get("type") or {}
        for direction, issue_field in (("outward", "outwardIssue"), ("inward", "inwardIssue")):
            other = link.get(issue_field)
            if not other or not other.get("key"):
                continue
            links.append(
                IssueLink(
                    key=other["key"],
                    link_type=link_type.get("name"),
                    relation=link_type.get(direction),
                    direction=direction,
                    status=((other.get("fields") or {}).get("status") or {}).get("name"),
                )
            )
    return tuple(links)


def blockers_from_raw_links(raw_links: Iterable[dict[str, Any]] | None) -> list[str]:
    """Keys of issues blocking this one.

    A "Blocks" link whose inward issue is the other side, or any link type
    whose inward description is "is blocked by" pointing outward.
    """
    blockers: list[str] = []
    for link in raw_links or []:
        link_type = link.get("type") or {}
        inward = link.get("inwardIssue") or {}
        outward = link.get("outwardIssue") or {}
        if link_type.get("name") == BLOCKS_LINK_NAME and inward.get("key"):
            blockers.append(inward["key"])
        if link_type.get("inward") == BLOCKED_BY_RELATION and outward.get("key"):
            blockers.append(outward["key"])
    return blockers


def linked_issues_from_links(links: Iterable[IssueLink]) -> list[LinkedIssue]:
    return [LinkedIssue(key=link.key, relation=link.relation, status=link.status) for link in links]


def map_snapshot(raw: dict[str, Any]) -> IssueSnapshot:
    """Map a raw issue payload; ``id``, ``key`` and status are required."""
    fields = raw.get("fields") or {}
    issue_id = raw.get("id")
    key = raw.get("key")
    status = (fields.get("status") or {}).get("name")
    if not issue_id or not key or not status:
        raise ValueError(f"Issue payload missing required id/key/status: {key or issue_id!r}")
    return IssueSnapshot(
        id=str(issue_id),
        key=key,
        status=status,
        created=parse_dt(fields.get("created")),
        updated=parse_dt(fields.get("updated")),
        assignee=map_identity(fields.get("assignee")),
        reporter=map_identity(fields.get("reporter")),
        priority=(fields.get("priority") or {}).get("name") if fields.get("priority") else None,
        summary=fields.get("summary"),
        links=map_links(fields.get("issuelinks")),
    )


def map_changelog(histories: Iterable[dict[str, Any]] | None) -> list[ChangelogEntry]:
    """Map changelog histories, most recent first. Undated entries are dropped."""
    entries: list[ChangelogEntry] = []
    for h in histories or []:
        created = parse_dt(h.get("created"))
        if created is None:
            continue
        items = tuple(
            ChangeItem(
                field=it.get("field"),
                field_type=it.get("fieldtype"),
                from_value=it.get("fromString"),
                to_value=it.get("toString"),
            )
            for it in (h.get("items") or [])
            if isinstance(it, dict)
        )
        entries.append(ChangelogEntry(author=map_identity(h.get("author")), created=created, items=items))
    entries.sort(key=lambda e: e.created, reverse=True)
    return entries


def is_human_comment_author(author: dict[str, Any] | None) -> bool:
    return bool(author) and author.get("accountType") == HUMAN_ACCOUNT_TYPE and bool(author.get("active"))


def last_human_comment(comments: Iterable[dict[str, Any]] | None) -> HumanComment | None:
    """Newest comment written by an active human account, if any."""
    latest: HumanComment | None = None
    for comment in comments or []:
        author = comment.get("author")
        if not is_human_comment_author(author):
            continue
        created = parse_dt(comment.get("created"))
        if created is None:
            continue
        if latest is None or created > latest.created:
            latest = HumanComment(created=created, author=author.get("displayName") or "Unknown")
    return latest


def map_watchers(raw_watchers: Iterable[dict[str, Any]] | None) -> list[Identity]:
    watchers = [map_identity(w) for w in raw_watchers or [] if isinstance(w, dict)]
    return [w for w in watchers if w is not None]
