import datetime as dt

import pytest

from adaptivity import DifficultyAdaptor
from stats import SessionRecord, StatsStore, Subject
from storage import MemoryStorage


def make_record(
    score=50,
    accuracy=0.5,
    user_id="u-test",
    subject=Subject.MATH,
    game_id="math-calc",
    difficulty=1,
    start="2024-05-01T10:00:00+00:00",
    end="2024-05-01T10:02:00+00:00",
):
    return SessionRecord(
        user_id=user_id,
        subject=subject,
        game_id=game_id,
        start_time=start,
        end_time=end,
        score=score,
        accuracy=accuracy,
        difficulty=difficulty,
        hints_used=0,
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return StatsStore(storage)


@pytest.fixture
def adaptor():
    return DifficultyAdaptor()


class FakeClock:
    def __init__(self, start=dt.datetime(2024, 5, 1, 10, 0, tzinfo=dt.timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += dt.timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()
