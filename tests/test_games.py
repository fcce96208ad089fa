import random

import pytest

from conftest import make_record
from games import GAME_KEYS, GAMES, ArithmeticQuiz, GameSession, games_for, pick_quick_play
from stats import Subject


def new_session(store, adaptor, clock, game_id="math-calc"):
    return GameSession(store, adaptor, "u-test", Subject.MATH, game_id, clock=clock)


def test_catalog_has_seventeen_unique_games():
    assert len(GAMES) == 17
    assert len(set(GAME_KEYS)) == 17
    assert [g.id for g in games_for("english")] == [
        "english-scramble",
        "english-spell",
        "english-rhymes",
        "english-synonyms",
        "english-antonyms",
    ]
    assert games_for("history") == []


def test_finish_records_once(store, adaptor, clock):
    session = new_session(store, adaptor, clock)
    session.answer(True)
    session.answer(False)
    session.answer(True)
    clock.advance(90)

    record = session.finish()
    again = session.finish()

    assert again is record
    assert store.get_sessions() == [record]
    assert record.score == 15
    assert record.accuracy == pytest.approx(2 / 3)
    assert record.difficulty == 1
    assert record.hints_used == 0
    assert record.duration_s == 90


def test_abandoned_session_records_nothing(store, adaptor, clock):
    session = new_session(store, adaptor, clock)
    session.answer(True)

    assert store.get_sessions() == []


def test_no_answers_means_zero_accuracy(store, adaptor, clock):
    record = new_session(store, adaptor, clock).finish()

    assert record.accuracy == 0
    assert record.score == 0


def test_score_never_drops_below_zero(store, adaptor, clock):
    session = new_session(store, adaptor, clock)

    assert session.answer(False) == 0
    assert session.answer(True) == 10
    assert session.answer(False) == 5


def test_answer_after_finish_is_rejected(store, adaptor, clock):
    session = new_session(store, adaptor, clock)
    session.finish()

    with pytest.raises(RuntimeError):
        session.answer(True)


def test_difficulty_follows_history(store, adaptor, clock):
    for _ in range(3):
        store.record_session(make_record(score=100, difficulty=2))

    assert new_session(store, adaptor, clock).difficulty == 3
    assert new_session(store, adaptor, clock, game_id="math-sort").difficulty == 1


@pytest.mark.parametrize("difficulty", [1, 2, 3, 4, 5])
def test_arithmetic_questions_are_consistent(difficulty):
    quiz = ArithmeticQuiz(difficulty, rng=random.Random(difficulty))

    assert quiz.rounds == 3 + difficulty
    for _ in range(25):
        question = quiz.question()
        assert question.correct in question.options
        assert len(set(question.options)) == 4
        assert question.text.endswith("= ?")


def test_operators_grow_with_difficulty():
    assert ArithmeticQuiz(1).operators == ["+", "-"]
    assert ArithmeticQuiz(3).operators == ["+", "-", "×"]
    assert ArithmeticQuiz(5).operators == ["+", "-", "×", "÷"]


def test_division_has_whole_answers():
    quiz = ArithmeticQuiz(5, rng=random.Random(7))
    for _ in range(50):
        question = quiz.question()
        if "÷" in question.text:
            a, _, b, _, _ = question.text.split()
            assert int(a) % int(b) == 0
            assert int(a) // int(b) == question.correct


def test_quick_play_avoids_repeat():
    rng = random.Random(3)
    keys = ["math-calc", "math-sort"]

    picks = {pick_quick_play(keys, "math-calc", rng) for _ in range(20)}

    assert picks == {"math-sort"}


def test_quick_play_edge_cases():
    assert pick_quick_play([], "math-calc") is None
    assert pick_quick_play(["math-calc"], "math-calc") == "math-calc"
