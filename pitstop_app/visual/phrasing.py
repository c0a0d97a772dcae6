"""Encouragement phrasing strategies.

The response decision is deterministic; which canned line gets used is a
presentation choice made here. ``RandomPhrasing`` varies the wording,
``FixedPhrasing`` always picks the same line (useful for tests and previews).
"""

from __future__ import annotations

import random
from typing import Protocol

ENCOURAGEMENTS: dict[str, tuple[str, ...]] = {
    "In Progress": (
        "✅ Great progress, {author}! Keep up the momentum! 🚀",
        "👏 Nice work on this! The team appreciates the updates.",
        "🎯 On track! Thanks for keeping this moving forward.",
    ),
    "In Review": (
        "👀 Thanks for getting this into review! Reviewers have been notified.",
        "✅ Code review in progress! Great job getting this ready.",
        "🔍 In review - appreciate you moving this along!",
    ),
    "Code Review": (
        "👀 Thanks for getting this into review! Reviewers have been notified.",
        "✅ Under review! Great work getting this to this stage.",
    ),
    "Testing": (
        "🧪 In testing - great progress! Almost there!",
        "✅ Nice! QA will verify this soon.",
    ),
    "Done": (
        "🎉 Awesome work! This is complete!",
        "✅ Shipped! Great job seeing this through.",
    ),
    "default": (
        "👍 Keep up the good work, {author}!",
        "✅ Thanks for the update!",
        "🚀 Nice progress!",
    ),
}


def encouragement_options(status: str | None) -> tuple[str, ...]:
    return ENCOURAGEMENTS.get(status or "", ENCOURAGEMENTS["default"])


class PhrasingStrategy(Protocol):
    def encouragement(self, status: str | None, author_name: str) -> str: ...


class RandomPhrasing:
    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def encouragement(self, status: str | None, author_name: str) -> str:
        return self._rng.choice(encouragement_options(status)).format(author=author_name)


class FixedPhrasing:
    def __init__(self, index: int = 0):
        self.index = index

    def encouragement(self, status: str | None, author_name: str) -> str:
        options = encouragement_options(status)
        return options[self.index % len(options)].format(author=author_name)
