"""Threshold and settings editor with YAML import/export."""

from __future__ import annotations

import logging

import pandas as pd
import streamlit as st
import yaml

from pitstop_app.app import register_page
from pitstop_app.core.config import FeatureToggles, Settings
from pitstop_app.core.config_store import ConfigStore, ConfigStoreError
from pitstop_app.core.service import StallService

logger = logging.getLogger(__name__)


def _store() -> ConfigStore:
    store = st.session_state.get("config_store")
    if store is None:
        store = ConfigStore()
        st.session_state["config_store"] = store
    return store


def _reload_service(store: ConfigStore):
    """Rebuild the service so new values take effect on the next scan."""
    service: StallService | None = st.session_state.get("stall_service")
    if service is not None:
        st.session_state["stall_service"] = StallService.from_store(service.source, store)


def _thresholds_section(store: ConfigStore):
    st.subheader("Status thresholds (hours)")
    current = store.get_thresholds().as_dict()
    frame = pd.DataFrame({"status": list(current), "hours": list(current.values())})
    edited = st.data_editor(frame, hide_index=True, num_rows="dynamic", key="threshold_editor")

    with st.form("add_threshold"):
        c1, c2 = st.columns(2)
        status = c1.selectbox("Status", store.available_statuses())
        hours = c2.number_input("Hours", min_value=1.0, value=48.0, step=1.0)
        if st.form_submit_button("Set threshold"):
            try:
                store.set_threshold_for_status(status, hours)
                _reload_service(store)
                st.success(f"Threshold for '{status}' set to {hours:g}h.")
            except ConfigStoreError as exc:
                st.error(str(exc))

    c1, c2 = st.columns(2)
    if c1.button("Save thresholds", type="primary"):
        rows = edited.dropna(subset=["status", "hours"])
        try:
            store.set_thresholds({str(r.status): float(r.hours) for r in rows.itertuples()})
            _reload_service(store)
            st.success("Thresholds saved.")
        except (ConfigStoreError, ValueError) as exc:
            st.error(f"Failed to save thresholds: {exc}")
    if c2.button("Reset to defaults"):
        try:
            store.reset_thresholds()
            _reload_service(store)
            st.success("Thresholds reset.")
        except ConfigStoreError as exc:
            st.error(str(exc))


def _settings_section(store: ConfigStore):
    st.subheader("General settings")
    settings = store.get_settings()
    with st.form("settings_form"):
        no_human = st.number_input(
            "No-human-comment threshold (hours)",
            min_value=1.0,
            value=float(settings.no_human_comment_threshold_hours),
        )
        cooldown = st.number_input(
            "Comment cooldown (hours)",
            min_value=0.0,
            value=float(settings.comment_cooldown_hours),
        )
        max_issues = st.number_input("Max issues per run", min_value=1, value=int(settings.max_issues_per_run))
        active = st.multiselect(
            "Active statuses",
            options=sorted(set(store.available_statuses()) | set(settings.active_statuses)),
            default=list(settings.active_statuses),
        )
        st.markdown("**Features**")
        toggles = {
            name: st.checkbox(name.replace("_", " ").capitalize(), value=value)
            for name, value in settings.features.as_dict().items()
        }
        if st.form_submit_button("Save settings", type="primary"):
            updated = Settings(
                no_human_comment_threshold_hours=no_human,
                comment_cooldown_hours=cooldown,
                max_issues_per_run=int(max_issues),
                active_statuses=tuple(active) or settings.active_statuses,
                features=FeatureToggles(**toggles),
            )
            try:
                store.set_settings(updated)
                _reload_service(store)
                st.success("Settings saved.")
            except ConfigStoreError as exc:
                st.error(str(exc))


def _import_export_section(store: ConfigStore):
    st.subheader("Import / export")
    exported = yaml.safe_dump(store.export_config(), sort_keys=False)
    st.download_button("Export configuration", data=exported, file_name="pitstop-config.yaml", mime="text/yaml")
    uploaded = st.file_uploader("Import configuration", type=["yaml", "yml", "json"])
    if uploaded is not None and st.button("Apply import"):
        try:
            document = yaml.safe_load(uploaded.getvalue().decode("utf-8"))
            store.import_config(document)
            _reload_service(store)
            st.success("Configuration imported.")
        except (yaml.YAMLError, UnicodeDecodeError, ConfigStoreError) as exc:
            logger.warning("Configuration import failed: %s", exc)
            st.error(f"Import failed: {exc}")


@register_page("Thresholds & Settings")
def config_page():
    st.title("Thresholds & Settings")
    st.caption("Per-status inactivity thresholds and detection features.")
    store = _store()
    _thresholds_section(store)
    st.markdown("---")
    _settings_section(store)
    st.markdown("---")
    _import_export_section(store)
