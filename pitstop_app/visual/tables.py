"""Table helpers for the stalled-issue views."""

from __future__ import annotations

import pandas as pd
import streamlit as st

SEVERITY_ORDER = ["CRITICAL", "HIGH", "MEDIUM", "LOW"]


def add_ticket_link(df: pd.DataFrame, server: str, key_col: str = "key", label: str = "Ticket"):
    if df.empty or key_col not in df.columns:
        return df, {}
    out = df.copy()
    base = server.rstrip("/")
    out.insert(0, label, out[key_col].astype(str).map(lambda k: f"{base}/browse/{k}" if base else k))
    cfg = {
        label: st.column_config.LinkColumn(
            label,
            display_text=r"browse/(.*)$",
            help="Open in Jira",
            width="small",
        )
    }
    return out.drop(columns=[key_col]), cfg


def severity_frame(by_severity: dict[str, int]) -> pd.DataFrame:
    frame = pd.DataFrame({"severity": list(by_severity), "issues": list(by_severity.values())})
    frame["severity"] = pd.Categorical(frame["severity"], categories=SEVERITY_ORDER, ordered=True)
    return frame.sort_values("severity").set_index("severity")


def reasons_frame(stall_reasons: dict[str, int]) -> pd.DataFrame:
    frame = pd.DataFrame({"reason": list(stall_reasons), "issues": list(stall_reasons.values())})
    return frame.sort_values("issues", ascending=False).set_index("reason")


def render_stalled_table(df: pd.DataFrame, server: str, *, caption: str | None = None):
    if df.empty:
        st.info("No stalled issues.")
        return
    linked, cfg = add_ticket_link(df, server)
    if caption:
        st.caption(caption)
    st.dataframe(linked, hide_index=True, column_config=cfg)
