"""Difficulty adaptation from a short window of recent sessions.

The adaptor only looks at the mean score of whatever it is given. Picking
the window (the last few sessions of one game) is the caller's job, and
``choose_difficulty`` does it the way every game expects.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Sequence

from metrics import average
from stats import SessionRecord, StatsStore


logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 3


@dataclass(frozen=True)
class DifficultyRules:
    promote_threshold: float = 90
    demote_threshold: float = 60
    min_level: int = 1
    max_level: int = 5


class DifficultyAdaptor:
    def __init__(self, rules: DifficultyRules | None = None) -> None:
        self.rules = rules or DifficultyRules()

    def calculate_difficulty(
        self, recent_sessions: Sequence[SessionRecord], current_difficulty: int
    ) -> int:
        if not recent_sessions:
            return current_difficulty
        avg_score = average(s.score for s in recent_sessions)
        if avg_score >= self.rules.promote_threshold:
            return min(current_difficulty + 1, self.rules.max_level)
        if avg_score <= self.rules.demote_threshold:
            return max(current_difficulty - 1, self.rules.min_level)
        return current_difficulty

    def clamp(self, level: int) -> int:
        return min(max(level, self.rules.min_level), self.rules.max_level)


def recent_window(
    sessions: Sequence[SessionRecord], game_id: str, size: int = DEFAULT_WINDOW
) -> list[SessionRecord]:
    """Last ``size`` sessions of ``game_id``, oldest first."""
    matching = [s for s in sessions if s.game_id == game_id]
    return matching[-size:] if size > 0 else []


def choose_difficulty(
    store: StatsStore,
    adaptor: DifficultyAdaptor,
    user_id: str,
    subject: str,
    game_id: str,
    window: int = DEFAULT_WINDOW,
) -> int:
    history = recent_window(store.get_sessions(user_id=user_id, subject=subject), game_id, window)
    if not history:
        return adaptor.rules.min_level
    current = history[-1].difficulty or adaptor.rules.min_level
    level = adaptor.clamp(adaptor.calculate_difficulty(history, current))
    logger.debug("Difficulty for %s: %d -> %d", game_id, current, level)
    return level
