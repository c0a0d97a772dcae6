"""Jira API client wrapper (REST v3 + enhanced search pagination)."""

from __future__ import annotations

import hashlib
import json
import time
from typing import Any

from jira import JIRA, JIRAError


class JiraAPI:
    def __init__(self, server: str, email: str, token: str):
        self.server = server.rstrip("/")
        self.client = JIRA(
            basic_auth=(email, token), options={"server": self.server, "rest_api_version": "3"}
        )
        # Simple in-memory cache: {(hash): (timestamp, data)}
        self._cache: dict[str, tuple[float, list]] = {}
        self._cache_ttl = 300.0  # seconds

    def clear_cache(self) -> None:
        """Reset the in-memory search cache."""
        cache = getattr(self, "_cache", None)
        if isinstance(cache, dict):
            cache.clear()

    def _cache_key(self, jql: str, fields, expand, page_size: int, limit) -> str:
        payload = {
            "jql": jql,
            "fields": fields,
            "expand": expand,
            "page_size": page_size,
            "limit": limit,
        }
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()

    def _session(self):
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("JIRA session unavailable")
        return session

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        resp = self._session().get(f"{self.server}{path}", params=params or {})
        if resp.status_code >= 400:
            raise RuntimeError(f"Jira request {path} failed {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    def search_enhanced(
        self,
        jql: str,
        fields: list[str] | None = None,
        expand: list[str] | None = None,
        page_size: int = 100,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Run a JQL search following ``nextPageToken`` pages.

        ``limit`` caps the total number of issues returned; results keep the
        order requested by the JQL ``ORDER BY`` clause.
        """
        key = self._cache_key(jql, fields, expand, page_size, limit)
        now = time.time()
        cached = self._cache.get(key)
        if cached and (now - cached[0]) < self._cache_ttl:
            return cached[1]
        params: dict[str, Any] = {"jql": jql, "maxResults": page_size if limit is None else min(page_size, limit)}
        if fields:
            params["fields"] = ",".join(fields)
        if expand:
            params["expand"] = ",".join(expand)
        out: list[dict[str, Any]] = []
        token = None
        while True:
            qp = dict(params)
            if token:
                qp["nextPageToken"] = token
            data = self._get_json("/rest/api/3/search/jql", qp)
            out.extend(data.get("issues", []))
            if limit is not None and len(out) >= limit:
                out = out[:limit]
                break
            token = data.get("nextPageToken")
            if not token or data.get("isLast") is True:
                break
        self._cache[key] = (now, out)
        return out

    def fetch_issue_raw(
        self,
        issue_key: str,
        *,
        fields: list[str] | None = None,
        expand: str | None = None,
    ) -> dict[str, Any]:
        try:
            issue = self.client.issue(
                issue_key,
                fields=",".join(fields) if fields else None,
                expand=expand,
            )
        except JIRAError as exc:  # pragma: no cover - network error path
            raise RuntimeError(f"Failed to fetch issue {issue_key}: {exc}") from exc
        if hasattr(issue, "raw"):
            return issue.raw
        if isinstance(issue, dict):
            return issue
        raise RuntimeError(f"Unexpected issue payload type for {issue_key}: {type(issue)!r}")

    def fetch_changelog_raw(self, issue_id: str) -> list[dict[str, Any]]:
        raw = self.fetch_issue_raw(issue_id, fields=["none"], expand="changelog")
        return list((raw.get("changelog") or {}).get("histories") or [])

    def fetch_comments_raw(self, issue_id: str, max_results: int = 50) -> list[dict[str, Any]]:
        data = self._get_json(
            f"/rest/api/3/issue/{issue_id}/comment",
            {"orderBy": "-created", "maxResults": max_results},
        )
        return list(data.get("comments") or [])

    def fetch_watchers_raw(self, issue_id: str) -> list[dict[str, Any]]:
        data = self._get_json(f"/rest/api/3/issue/{issue_id}/watchers")
        return list(data.get("watchers") or [])

    def fetch_issue_links_raw(self, issue_id: str) -> list[dict[str, Any]]:
        raw = self.fetch_issue_raw(issue_id, fields=["issuelinks"])
        return list((raw.get("fields") or {}).get("issuelinks") or [])

    def fetch_myself(self) -> dict[str, Any]:
        return self._get_json("/rest/api/3/myself")
