"""Connection setup page: collect Jira credentials and initialize StallService."""

from __future__ import annotations

import logging

import streamlit as st

from pitstop_app.app import SETUP_PAGE, register_page
from pitstop_app.core.config_store import ConfigStore
from pitstop_app.core.jira_client import JiraAPI
from pitstop_app.core.service import StallService
from pitstop_app.core.sources import JiraDataSource

logger = logging.getLogger(__name__)


def secret_credentials() -> tuple[str | None, str | None, str | None]:
    """Read server/email/token from a ``[jira]`` secrets section or top-level keys."""
    jira_secrets = st.secrets.get("jira", {})
    server = jira_secrets.get("JIRA_SERVER") or st.secrets.get("JIRA_SERVER")
    email = jira_secrets.get("JIRA_EMAIL") or st.secrets.get("JIRA_EMAIL")
    token = (
        jira_secrets.get("JIRA_API_TOKEN")
        or st.secrets.get("JIRA_API_TOKEN")
        or jira_secrets.get("JIRA_TOKEN")
        or st.secrets.get("JIRA_TOKEN")
    )
    return server, email, token


def connect(server: str, email: str, token: str, *, cache_ttl: float | None = None) -> StallService:
    """Build the data source and service and stash them in the session."""
    api = JiraAPI(server, email, token)
    if cache_ttl:
        api._cache_ttl = float(cache_ttl)
    source = JiraDataSource(api)
    store = st.session_state.get("config_store") or ConfigStore()
    service = StallService.from_store(source, store)
    st.session_state["jira_server"] = server
    st.session_state["jira_email"] = email
    st.session_state["jira_source"] = source
    st.session_state["config_store"] = store
    st.session_state["stall_service"] = service
    logger.info("Connected to %s", server)
    return service


@register_page(SETUP_PAGE)
def setup_page():
    st.title("Jira Connection Setup")
    st.caption("Enter credentials (use secrets manager in production).")

    secret_server, secret_email, secret_token = secret_credentials()
    server = st.text_input(
        "Jira Server URL",
        value=st.session_state.get("jira_server") or secret_server or "",
    )
    email = st.text_input(
        "Email / Username",
        value=st.session_state.get("jira_email") or secret_email or "",
    )
    token = st.text_input("API Token", type="password", value=secret_token or "")
    ttl = st.number_input("Client cache TTL (seconds)", min_value=60, max_value=3600, value=300)

    if st.button("Initialize Connection", type="primary"):
        if not (server and email and token):
            st.error("All fields required.")
            return
        try:
            connect(server, email, token, cache_ttl=ttl)
            st.success("Connection initialized.")
        except Exception as e:  # pragma: no cover
            st.error(f"Failed to initialize Jira client: {e}")

    if "stall_service" in st.session_state:
        st.info("StallService ready.")
