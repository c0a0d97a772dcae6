"""StallService: wires collaborators, configuration and the stall engine together."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any, cast

import pytz

from pitstop_app.analytics.advisor import ContextAdvisor
from pitstop_app.analytics.changelog import analyze_changelog
from pitstop_app.analytics.classifier import StallClassifier
from pitstop_app.analytics.dashboard import aggregate
from pitstop_app.visual.messages import format_smart_response
from pitstop_app.visual.phrasing import PhrasingStrategy, RandomPhrasing

from .config import DASHBOARD_DELAY_SECONDS, DASHBOARD_MAX_ISSUES, TIMEZONE, Settings, ThresholdConfig
from .config_store import ConfigStore
from .models import ChangelogAnalysis, DashboardMetrics, IssueSnapshot, StallResult, Suggestion
from .responses import ResponseKind, decide_comment_response, should_post_comment
from .sources import IssueDataSource, IssuePopulationSource, guarded_fetch

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]


class StallService:
    """Outward face of the engine.

    Thresholds and settings are resolved once at construction and handed to
    the classifier; nothing below this layer reads the config store.
    """

    def __init__(
        self,
        source: IssueDataSource,
        thresholds: ThresholdConfig | None = None,
        settings: Settings | None = None,
    ):
        self.source = source
        self.thresholds = thresholds or ThresholdConfig()
        self.settings = settings or Settings()
        self.classifier = StallClassifier(source, self.thresholds, self.settings)
        self.advisor = ContextAdvisor(source)
        self._tz = pytz.timezone(TIMEZONE)

    @classmethod
    def from_store(cls, source: IssueDataSource, store: ConfigStore) -> StallService:
        return cls(source, store.get_thresholds(), store.get_settings())

    def _now(self, now: datetime | None) -> datetime:
        return now or datetime.now(tz=self._tz)

    # ------------------ Engine operations ------------------
    def analyze_changelog(self, issue_id: str, *, now: datetime | None = None) -> ChangelogAnalysis | None:
        """Fetch and analyze one issue's history; ``None`` when the history is unavailable."""
        ok, entries = guarded_fetch(self.source.fetch_changelog, issue_id, "changelog")
        if not ok:
            return None
        return analyze_changelog(entries, now=self._now(now))

    def classify(
        self,
        snapshot: IssueSnapshot,
        *,
        now: datetime | None = None,
        with_suggestions: bool = True,
    ) -> StallResult:
        now = self._now(now)
        features = self.settings.features
        analysis = self.analyze_changelog(snapshot.id, now=now) if features.use_changelog_analysis else None
        result = self.classifier.classify(snapshot, analysis, now=now)
        if with_suggestions and result.is_stalled and features.use_contextual_suggestions:
            result = replace(result, suggestions=tuple(self.advisor.suggest(snapshot, result, analysis)))
        return result

    def suggest(self, snapshot: IssueSnapshot, result: StallResult) -> list[Suggestion]:
        return self.advisor.suggest(snapshot, result)

    def aggregate(
        self,
        snapshots: Iterable[IssueSnapshot],
        *,
        now: datetime | None = None,
        delay_seconds: float = DASHBOARD_DELAY_SECONDS,
        progress: ProgressCallback | None = None,
    ) -> DashboardMetrics:
        now = self._now(now)
        return aggregate(
            snapshots,
            lambda s: self.classify(s, now=now, with_suggestions=False),
            now=now,
            delay_seconds=delay_seconds,
            progress=progress,
        )

    def dashboard_metrics(
        self,
        *,
        statuses: Sequence[str] | None = None,
        max_issues: int = DASHBOARD_MAX_ISSUES,
        now: datetime | None = None,
        delay_seconds: float = DASHBOARD_DELAY_SECONDS,
        progress: ProgressCallback | None = None,
    ) -> DashboardMetrics:
        """List active issues (least recently updated first) and aggregate them.

        A failing listing call yields all-zero metrics instead of an error.
        """
        if not hasattr(self.source, "search_active_issues"):
            logger.error("Data source %s cannot list issues", type(self.source).__name__)
            return DashboardMetrics.empty()
        source = cast(IssuePopulationSource, self.source)
        if progress:
            progress("Querying active issues", None, None)
        try:
            population = source.search_active_issues(list(statuses or self.settings.active_statuses), max_issues)
        except Exception as exc:
            logger.error("Error listing issues for dashboard: %s", exc)
            return DashboardMetrics.empty()
        return self.aggregate(population, now=now, delay_seconds=delay_seconds, progress=progress)

    # ------------------ Comment responses ------------------
    def plan_comment_response(
        self,
        snapshot: IssueSnapshot,
        *,
        author_id: str | None,
        author_name: str,
        app_account_id: str | None,
        recent_comments: Iterable[dict[str, Any]] = (),
        phrasing: PhrasingStrategy | None = None,
        now: datetime | None = None,
    ) -> tuple[ResponseKind, str | None]:
        """Decide whether to answer a new comment and render the reply text.

        Nothing is posted; the caller owns side effects.
        """
        now = self._now(now)
        if app_account_id and author_id == app_account_id:
            return ResponseKind.NONE, None
        if not should_post_comment(
            recent_comments,
            app_account_id,
            cooldown_hours=self.settings.comment_cooldown_hours,
            now=now,
        ):
            logger.info("Skipping %s: alerted within the last %sh", snapshot.key, self.settings.comment_cooldown_hours)
            return ResponseKind.NONE, None
        result = self.classify(snapshot, now=now, with_suggestions=False)
        kind = decide_comment_response(
            snapshot,
            result,
            author_id=author_id,
            app_account_id=app_account_id,
            features=self.settings.features,
            now=now,
        )
        if kind is ResponseKind.STALL_WARNING:
            text = format_smart_response(
                result,
                author_name=author_name,
                status=snapshot.status,
                assignee=snapshot.assignee.name if snapshot.assignee else None,
            )
            return kind, text
        if kind is ResponseKind.ENCOURAGEMENT:
            return kind, (phrasing or RandomPhrasing()).encouragement(snapshot.status, author_name)
        return kind, None
