"""Headless checks of the textual app wiring."""

import asyncio
import datetime as dt

from textual.widgets import Static

from app import AnalyticsScreen, ArithmeticScreen, HomeScreen, NotFoundScreen, StealthLearningApp
from config import Config
from conftest import make_record
from storage import MemoryStorage


def make_app(tmp_path):
    config = Config(data_dir=tmp_path, feedback_delay_s=0)
    return StealthLearningApp(config, analytics=MemoryStorage(), identity=MemoryStorage(b"u-app"))


def run(scenario):
    asyncio.run(scenario())


def test_starts_on_home(tmp_path):
    async def scenario():
        app = make_app(tmp_path)
        async with app.run_test() as pilot:
            await pilot.pause()
            assert isinstance(app.screen, HomeScreen)
            assert app.navigator.user_id == "u-app"

    run(scenario)


def test_unknown_view_shows_not_found(tmp_path):
    async def scenario():
        app = make_app(tmp_path)
        async with app.run_test() as pilot:
            await pilot.pause()
            app.navigator.navigate("science-body")
            await pilot.pause()
            assert isinstance(app.screen, NotFoundScreen)
            assert app.screen.message == "View not found: science-body"

    run(scenario)


def test_finished_game_is_recorded_once(tmp_path):
    async def scenario():
        app = make_app(tmp_path)
        async with app.run_test() as pilot:
            await pilot.pause()
            app.navigator.navigate("math-calc", {"subject": "math"})
            await pilot.pause()
            screen = app.screen
            assert isinstance(screen, ArithmeticScreen)
            screen.end_game()
            app.navigator.navigate("home")
            await pilot.pause()
            sessions = app.store.get_sessions(user_id="u-app")
            assert [s.game_id for s in sessions] == ["math-calc"]

    run(scenario)


def test_leaving_a_game_records_nothing(tmp_path):
    async def scenario():
        app = make_app(tmp_path)
        async with app.run_test() as pilot:
            await pilot.pause()
            app.navigator.navigate("math-calc", {"subject": "math"})
            await pilot.pause()
            app.navigator.navigate("gameSelect", {"subject": "math"})
            await pilot.pause()
            assert app.store.get_sessions() == []

    run(scenario)


def test_analytics_without_data(tmp_path):
    async def scenario():
        app = make_app(tmp_path)
        async with app.run_test() as pilot:
            await pilot.pause()
            app.navigator.navigate("analytics")
            await pilot.pause()
            assert isinstance(app.screen, AnalyticsScreen)
            body = app.screen.query_one("#stats-body", Static)
            assert body is not None

    run(scenario)


def test_analytics_renders_malformed_records(tmp_path):
    async def scenario():
        app = make_app(tmp_path)
        started = dt.datetime(2024, 5, 1, 10, 0, tzinfo=dt.timezone.utc)
        app.store.record_session(make_record(user_id="u-app", score=None, accuracy="high"))
        app.store.record_session(make_record(user_id="u-app", start=started, end=started))
        async with app.run_test() as pilot:
            await pilot.pause()
            app.navigator.navigate("analytics")
            await pilot.pause()
            assert isinstance(app.screen, AnalyticsScreen)

    run(scenario)


def test_failed_export_is_reported_not_raised(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    async def scenario():
        config = Config(data_dir=blocker, feedback_delay_s=0)
        app = StealthLearningApp(config, analytics=MemoryStorage(), identity=MemoryStorage(b"u-app"))
        async with app.run_test() as pilot:
            await pilot.pause()
            app.navigator.navigate("analytics")
            await pilot.pause()
            app.screen.action_export()
            await pilot.pause()
            assert isinstance(app.screen, AnalyticsScreen)

    run(scenario)
    assert blocker.read_text() == "not a directory"
