"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import pitstop_app` works. Also provides an in-memory
stand-in for the Jira-backed data source.
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FakeSource:
    """Dict-backed data source; any call named in ``fail`` raises."""

    def __init__(
        self,
        *,
        changelog=None,
        comment=None,
        blockers=None,
        linked=None,
        watchers=None,
        issues=None,
        fail=(),
    ):
        self.changelog = list(changelog or [])
        self.comment = comment
        self.blockers = list(blockers or [])
        self.linked = list(linked or [])
        self.watchers = list(watchers or [])
        self.issues = list(issues or [])
        self.fail = set(fail)
        self.calls: list[tuple[str, str]] = []

    def _call(self, what: str, issue_id: str):
        self.calls.append((what, issue_id))
        if what in self.fail:
            raise RuntimeError(f"{what} unavailable")

    def fetch_changelog(self, issue_id):
        self._call("changelog", issue_id)
        return list(self.changelog)

    def fetch_last_human_comment(self, issue_id):
        self._call("comment", issue_id)
        return self.comment

    def fetch_blockers(self, issue_id):
        self._call("blockers", issue_id)
        return list(self.blockers)

    def fetch_linked_issues(self, issue_id):
        self._call("linked", issue_id)
        return list(self.linked)

    def fetch_watchers(self, issue_id):
        self._call("watchers", issue_id)
        return list(self.watchers)

    def search_active_issues(self, statuses, max_results=100):
        self._call("search", ",".join(statuses))
        return [s for s in self.issues if s.status in statuses][:max_results]


@pytest.fixture
def now():
    return datetime(2024, 9, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def fake_source():
    return FakeSource
