"""Stalled issues page.

Scans active issues (least recently updated first), classifies each one and
shows dashboard metrics, plus a single-issue inspector with the full
verdict, suggestions and changelog insights.
"""

from __future__ import annotations

import streamlit as st

from pitstop_app.analytics.dashboard import breakdown_frame, stalled_frame
from pitstop_app.app import register_page
from pitstop_app.core.config import DASHBOARD_MAX_ISSUES
from pitstop_app.core.models import DashboardMetrics
from pitstop_app.core.service import StallService
from pitstop_app.visual.messages import format_changelog_insights, format_stall_message
from pitstop_app.visual.progress import ProgressReporter
from pitstop_app.visual.tables import reasons_frame, render_stalled_table, severity_frame


def _render_metrics(metrics: DashboardMetrics, server: str):
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Issues scanned", metrics.total_issues)
    c2.metric("Stalled", metrics.stalled_issues)
    c3.metric("Healthy", metrics.healthy_issues)
    c4.metric("Avg hours stalled", metrics.average_stall_hours)
    if metrics.failed_issues:
        st.warning(f"{metrics.failed_issues} issue(s) could not be analyzed and were skipped.")
    if metrics.longest_stalled is not None:
        ls = metrics.longest_stalled
        st.caption(f"Longest stalled: {ls.key} ({ls.status}, {ls.hours_since_update}h, {ls.assignee})")

    left, right = st.columns(2)
    with left:
        st.subheader("By severity")
        st.bar_chart(severity_frame(metrics.by_severity))
    with right:
        st.subheader("Stall reasons")
        if metrics.stall_reasons:
            st.bar_chart(reasons_frame(metrics.stall_reasons))
        else:
            st.caption("No stall reasons recorded.")

    st.subheader("By status")
    st.dataframe(breakdown_frame(metrics.by_status, "status"), hide_index=True)
    st.subheader("By assignee")
    st.dataframe(breakdown_frame(metrics.by_assignee, "assignee"), hide_index=True)

    st.markdown("---")
    render_stalled_table(
        stalled_frame(metrics.recently_stalled),
        server,
        caption="Recently stalled issues (fewest hours since update first).",
    )


def _render_inspector(service: StallService):
    st.subheader("Inspect an issue")
    key = st.text_input("Issue key", placeholder="PROJ-123")
    if not st.button("Analyze") or not key:
        return
    source = st.session_state.get("jira_source")
    if source is None:
        st.warning("Initialize connection on Setup page first.")
        return
    try:
        snapshot = source.fetch_snapshot(key.strip())
    except Exception as exc:
        st.error(f"Failed to fetch {key}: {exc}")
        return
    result = service.classify(snapshot)
    if not result.is_stalled:
        st.success(f"{snapshot.key}: {result.summary}")
    else:
        st.markdown(format_stall_message(result, snapshot.key))
    insights = format_changelog_insights(result.changelog_analysis)
    if insights:
        st.markdown(insights)


@register_page("Stalled Issues")
def stalled_page():
    st.title("Stalled Issues")
    st.caption("Find active issues that stopped making real progress, and why.")
    service: StallService | None = st.session_state.get("stall_service")
    if service is None:
        st.warning("Initialize connection on Setup page first.")
        return
    max_issues = st.number_input(
        "Maximum issues to scan",
        min_value=1,
        max_value=500,
        value=DASHBOARD_MAX_ISSUES,
        step=10,
    )
    if st.button("Scan Issues", type="primary"):
        reporter = ProgressReporter("Scanning active issues")
        try:
            metrics = service.dashboard_metrics(max_issues=int(max_issues), progress=reporter.callback)
            st.session_state["dashboard_metrics"] = metrics
            reporter.complete(f"Analyzed {metrics.total_issues} issue(s).")
        except Exception as exc:  # pragma: no cover
            reporter.error(f"Failed to scan issues: {exc}")
            raise

    metrics: DashboardMetrics | None = st.session_state.get("dashboard_metrics")
    if metrics is None:
        st.info("No scan run yet.")
    else:
        _render_metrics(metrics, st.session_state.get("jira_server", ""))

    st.markdown("---")
    _render_inspector(service)
