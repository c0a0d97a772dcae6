"""Collaborator interface the stall engine pulls issue context through.

``IssueDataSource`` is what the classifier, advisor and dashboard require;
``JiraDataSource`` implements it over :class:`JiraAPI`. Any call may fail
independently, so engine code goes through :func:`guarded_fetch`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol, TypeVar

from .config import DASHBOARD_MAX_ISSUES, JIRA_SNAPSHOT_FIELDS
from .jira_client import JiraAPI
from .mappers import (
    blockers_from_raw_links,
    last_human_comment,
    linked_issues_from_links,
    map_changelog,
    map_links,
    map_snapshot,
    map_watchers,
)
from .models import ChangelogEntry, HumanComment, Identity, IssueSnapshot, LinkedIssue

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IssueDataSource(Protocol):
    def fetch_changelog(self, issue_id: str) -> list[ChangelogEntry]: ...

    def fetch_last_human_comment(self, issue_id: str) -> HumanComment | None: ...

    def fetch_blockers(self, issue_id: str) -> list[str]: ...

    def fetch_linked_issues(self, issue_id: str) -> list[LinkedIssue]: ...

    def fetch_watchers(self, issue_id: str) -> list[Identity]: ...


class IssuePopulationSource(IssueDataSource, Protocol):
    """A data source that can also list the issues a dashboard run covers."""

    def search_active_issues(self, statuses: Sequence[str], max_results: int = ...) -> list[IssueSnapshot]: ...


def guarded_fetch(call: Callable[[str], T], issue_id: str, what: str) -> tuple[bool, T | None]:
    """Run one collaborator call; ``(False, None)`` when it raised."""
    try:
        return True, call(issue_id)
    except Exception as exc:
        logger.warning("Failed to fetch %s for issue %s: %s", what, issue_id, exc)
        return False, None


class JiraDataSource:
    def __init__(self, api: JiraAPI):
        self.api = api

    def fetch_changelog(self, issue_id: str) -> list[ChangelogEntry]:
        return map_changelog(self.api.fetch_changelog_raw(issue_id))

    def fetch_last_human_comment(self, issue_id: str) -> HumanComment | None:
        return last_human_comment(self.api.fetch_comments_raw(issue_id))

    def fetch_blockers(self, issue_id: str) -> list[str]:
        return blockers_from_raw_links(self.api.fetch_issue_links_raw(issue_id))

    def fetch_linked_issues(self, issue_id: str) -> list[LinkedIssue]:
        return linked_issues_from_links(map_links(self.api.fetch_issue_links_raw(issue_id)))

    def fetch_watchers(self, issue_id: str) -> list[Identity]:
        return map_watchers(self.api.fetch_watchers_raw(issue_id))

    def fetch_snapshot(self, issue_id: str) -> IssueSnapshot:
        return map_snapshot(self.api.fetch_issue_raw(issue_id, fields=JIRA_SNAPSHOT_FIELDS))

    def fetch_app_account_id(self) -> str | None:
        return self.api.fetch_myself().get("accountId")

    def fetch_recent_comments(self, issue_id: str, max_results: int = 10) -> list[dict]:
        return self.api.fetch_comments_raw(issue_id, max_results=max_results)

    def search_active_issues(
        self,
        statuses: Sequence[str],
        max_results: int = DASHBOARD_MAX_ISSUES,
    ) -> list[IssueSnapshot]:
        """Issues in the given statuses, least recently updated first."""
        status_filter = ",".join(f'"{s}"' for s in statuses)
        jql = f"status in ({status_filter}) ORDER BY updated ASC"
        raw = self.api.search_enhanced(jql, fields=JIRA_SNAPSHOT_FIELDS, limit=max_results)
        snapshots: list[IssueSnapshot] = []
        for item in raw:
            try:
                snapshots.append(map_snapshot(item))
            except ValueError as exc:
                logger.warning("Skipping malformed issue payload: %s", exc)
        return snapshots
