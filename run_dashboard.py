"""Convenience launcher for the Streamlit app.

Usage:
  streamlit run run_dashboard.py

Automatically imports every module in ``pitstop_app/pages`` so each page
decorated with ``@register_page`` registers itself without manual edits here.
"""

import logging
from importlib import import_module
from pathlib import Path

import streamlit as st

from pitstop_app.app import main

st.set_page_config(layout="wide")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("pitstop")

PAGES_DIR = Path(__file__).parent / "pitstop_app" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    mod_name = f"pitstop_app.pages.{py.stem}"
    try:
        import_module(mod_name)
    except Exception as e:  # pragma: no cover
        logger.error("Failed importing page %s: %s", mod_name, e)


def _auto_init_service():
    """Initialize the stall service from Streamlit secrets if available."""
    if "stall_service" in st.session_state:
        return
    from pitstop_app.pages.setup import connect, secret_credentials

    server, email, token = secret_credentials()
    if not (server and email and token):
        st.sidebar.warning("Jira secrets not found. Please use the Setup page.")
        return
    st.sidebar.info("Secrets found, attempting to connect to Jira...")
    try:
        connect(server, email, token)
        st.sidebar.success("Jira connection successful!")
    except Exception as e:
        st.sidebar.error(f"Jira connection failed: {e}")
        st.session_state.pop("stall_service", None)


_auto_init_service()

if __name__ == "__main__":
    main()
