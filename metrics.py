from __future__ import annotations

from typing import Any, Iterable

CORRECT_POINTS = 10
WRONG_PENALTY = 5


def compute_accuracy(correct: int, attempts: int) -> float:
    return (correct / attempts) if attempts > 0 else 0.0


def average(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def apply_answer(score: int, is_correct: bool) -> int:
    if is_correct:
        return score + CORRECT_POINTS
    return max(0, score - WRONG_PENALTY)


def format_duration(seconds: float) -> str:
    total = int(max(seconds, 0.0))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h {minutes}m {secs}s"


def numeric(value: Any) -> float:
    # non-numeric values recorded in the ledger count as 0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0
