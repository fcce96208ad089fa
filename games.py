from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import logging
import random
from typing import Callable, Iterable

from adaptivity import DEFAULT_WINDOW, DifficultyAdaptor, choose_difficulty
from metrics import apply_answer, compute_accuracy
from stats import SessionRecord, StatsStore, Subject


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameInfo:
    id: str
    subject: Subject
    title: str
    description: str


GAMES = (
    GameInfo("math-falling", Subject.MATH, "Number Catch", "Catch the right answer while dodging obstacles."),
    GameInfo("math-memory", Subject.MATH, "Math Memory", "Flip cards to find pairs that sum to a target."),
    GameInfo("math-sort", Subject.MATH, "Number Sort", "Arrange numbers in ascending order."),
    GameInfo("math-compare", Subject.MATH, "Which is Larger?", "Pick the larger number."),
    GameInfo("math-calc", Subject.MATH, "Arithmetic Dash", "Solve arithmetic quickly."),
    GameInfo("math-pattern", Subject.MATH, "Pattern Puzzle", "Find the next number in a sequence."),
    GameInfo("math-sign", Subject.MATH, "Operator Picker", "Choose the correct operator."),
    GameInfo("english-scramble", Subject.ENGLISH, "Word Builder", "Arrange letters to form words."),
    GameInfo("english-spell", Subject.ENGLISH, "Spelling Challenge", "Choose the correct missing letter."),
    GameInfo("english-rhymes", Subject.ENGLISH, "Rhyming Words", "Pick the word that rhymes."),
    GameInfo("english-synonyms", Subject.ENGLISH, "Find the Synonym", "Choose the synonym for a word."),
    GameInfo("english-antonyms", Subject.ENGLISH, "Opposites", "Pick the word with opposite meaning."),
    GameInfo("science-classify", Subject.SCIENCE, "Animal or Plant?", "Sort objects into categories."),
    GameInfo("science-sequence", Subject.SCIENCE, "Sequence Builder", "Arrange items in the correct order."),
    GameInfo("science-quiz", Subject.SCIENCE, "Science Quiz", "Answer true/false questions."),
    GameInfo("science-weather", Subject.SCIENCE, "Weather Match", "Identify the weather."),
    GameInfo("science-body", Subject.SCIENCE, "Body Facts", "True or false about our bodies."),
)

GAME_KEYS = tuple(game.id for game in GAMES)


def games_for(subject: str) -> list[GameInfo]:
    return [game for game in GAMES if game.subject == subject]


def pick_quick_play(
    keys: Iterable[str], last: str | None = None, rng: random.Random | None = None
) -> str | None:
    """Random game key, avoiding a repeat of ``last`` when there is a choice."""
    keys = list(keys)
    if not keys:
        return None
    candidates = [k for k in keys if k != last] if len(keys) > 1 else keys
    return (rng or random).choice(candidates or keys)


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class GameSession:
    """One play-through of one game.

    The difficulty is fixed when the session starts. ``finish`` commits the
    record exactly once; a session that is never finished records nothing.
    """

    def __init__(
        self,
        store: StatsStore,
        adaptor: DifficultyAdaptor,
        user_id: str,
        subject: str,
        game_id: str,
        window: int = DEFAULT_WINDOW,
        clock: Callable[[], dt.datetime] = _now,
    ) -> None:
        self.store = store
        self.user_id = user_id
        self.subject = subject
        self.game_id = game_id
        self.clock = clock
        self.difficulty = choose_difficulty(store, adaptor, user_id, subject, game_id, window)
        self.started_at = clock()
        self.score = 0
        self.attempts = 0
        self.correct = 0
        self.record: SessionRecord | None = None

    @property
    def accuracy(self) -> float:
        return compute_accuracy(self.correct, self.attempts)

    @property
    def finished(self) -> bool:
        return self.record is not None

    def answer(self, is_correct: bool) -> int:
        if self.finished:
            raise RuntimeError(f"{self.game_id} session already finished")
        self.attempts += 1
        if is_correct:
            self.correct += 1
        self.score = apply_answer(self.score, is_correct)
        return self.score

    def finish(self) -> SessionRecord:
        if self.record is not None:
            return self.record
        self.record = SessionRecord(
            user_id=self.user_id,
            subject=self.subject,
            game_id=self.game_id,
            start_time=self.started_at.isoformat(),
            end_time=self.clock().isoformat(),
            score=self.score,
            accuracy=self.accuracy,
            difficulty=self.difficulty,
            hints_used=0,
        )
        self.store.record_session(self.record)
        logger.info(
            "%s finished: score=%d accuracy=%.2f difficulty=%d",
            self.game_id, self.score, self.accuracy, self.difficulty,
        )
        return self.record


@dataclass(frozen=True)
class Question:
    text: str
    correct: int
    options: tuple[int, ...]


class ArithmeticQuiz:
    """Multiple choice arithmetic; bigger numbers and more operators as difficulty rises."""

    def __init__(self, difficulty: int, rng: random.Random | None = None) -> None:
        self.difficulty = difficulty
        self.rng = rng or random.Random()
        self.rounds = 3 + difficulty

    @property
    def operators(self) -> list[str]:
        ops = ["+", "-"]
        if self.difficulty >= 3:
            ops.append("×")
        if self.difficulty >= 5:
            ops.append("÷")
        return ops

    def question(self) -> Question:
        rng = self.rng
        max_val = 10 + self.difficulty * 10
        op = rng.choice(self.operators)
        a = rng.randint(1, max_val)
        b = rng.randint(1, max_val)
        if op == "÷":
            b = rng.randint(1, max_val // 2)
            a = b * rng.randint(1, max(max_val // b, 1))

        if op == "+":
            correct = a + b
        elif op == "-":
            correct = a - b
        elif op == "×":
            correct = a * b
        else:
            correct = a // b

        options = {correct}
        while len(options) < 4:
            variance = rng.randint(1, 5 + self.difficulty * 2)
            options.add(correct + rng.choice((-variance, variance)))
        shuffled = list(options)
        rng.shuffle(shuffled)
        return Question(text=f"{a} {op} {b} = ?", correct=correct, options=tuple(shuffled))
