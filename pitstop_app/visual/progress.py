"""Progress banner for long-running dashboard scans."""

from __future__ import annotations

import streamlit as st


class ProgressReporter:
    """Render a banner and progress bar; ``callback`` matches the engine's progress hook."""

    def __init__(self, title: str):
        self._container = st.container()
        self._container.info(title)
        self._message = self._container.empty()
        self._bar = self._container.progress(0.0)
        self._total: int | None = None
        self._current = 0
        self._done = False

    def callback(self, message: str, current: int | None = None, total: int | None = None) -> None:
        if self._done:
            return
        if total:
            self._total = total
        if current is not None:
            self._current = max(0, current)
        self._message.write(message)
        if self._total:
            self._bar.progress(min(self._current / self._total, 1.0))

    def complete(self, message: str) -> None:
        if self._done:
            return
        self._bar.progress(1.0)
        self._container.success(message)
        self._done = True

    def error(self, message: str) -> None:
        if self._done:
            return
        self._container.error(message)
        self._done = True
