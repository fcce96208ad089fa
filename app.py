from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Static
from rich.console import Group
from rich.table import Table

from adaptivity import DifficultyAdaptor, DifficultyRules
from config import Config, setup_logging
from games import ArithmeticQuiz, GameSession, games_for, pick_quick_play
from metrics import average, numeric
from navigation import Navigator
from stats import StatsStore, Subject
from storage import FileStorage, Storage


logger = logging.getLogger(__name__)


@dataclass
class ScreenFactory:
    """Builds a screen class with the shared services it needs."""

    screen_cls: type
    services: dict[str, Any] = field(default_factory=dict)

    def build(self, navigator: Navigator, params: dict[str, Any]) -> Screen:
        return self.screen_cls(navigator, params, **self.services)


class NavScreen(Screen):
    BINDINGS = [("escape", "back", "Back")]
    back_key = "home"

    def __init__(self, navigator: Navigator, params: dict[str, Any]) -> None:
        super().__init__()
        self.navigator = navigator
        self.params = params

    def action_back(self) -> None:
        self.navigator.navigate(self.back_key, self._back_params())

    def _back_params(self) -> dict[str, Any]:
        return {}


class HomeScreen(NavScreen):
    BINDINGS = [("q", "app.quit", "Quit")]

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="home"):
            yield Static("Stealth Learning", id="title")
            yield Static("Choose a subject.", id="subtitle")
            with Horizontal(classes="buttons"):
                for subject in Subject:
                    yield Button(subject.value.title(), id=f"subject-{subject.value}")
            with Horizontal(classes="buttons"):
                yield Button("Quick Play", id="quick", variant="success")
                yield Button("Analytics", id="analytics")
                yield Button("Quit", id="quit", variant="error")
        yield Footer()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith("subject-"):
            self.navigator.navigate("gameSelect", {"subject": button_id.removeprefix("subject-")})
        elif button_id == "quick":
            self.app.action_quick_play()
        elif button_id == "analytics":
            self.navigator.navigate("analytics")
        elif button_id == "quit":
            self.app.exit()


class GameSelectScreen(NavScreen):
    def compose(self) -> ComposeResult:
        subject = self.params.get("subject", "")
        yield Header()
        with Vertical(id="select"):
            yield Static(f"Choose a {subject.title()} Game", id="select-title")
            for game in games_for(subject):
                yield Button(f"{game.title} - {game.description}", id=f"game-{game.id}")
            with Horizontal(classes="buttons"):
                yield Button("Back", id="back")
                yield Button("Analytics", id="analytics")
        yield Footer()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith("game-"):
            self.navigator.navigate(button_id.removeprefix("game-"), dict(self.params))
        elif button_id == "analytics":
            self.navigator.navigate("analytics")
        elif button_id == "back":
            self.action_back()


class AnalyticsScreen(NavScreen):
    BINDINGS = [("escape", "back", "Back"), ("x", "export", "Export")]

    def __init__(
        self,
        navigator: Navigator,
        params: dict[str, Any],
        store: StatsStore,
        export_path: Path | None = None,
    ) -> None:
        super().__init__(navigator, params)
        self.store = store
        self.export_path = export_path
        self.subject_filter: str | None = params.get("subject")

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="stats"):
            yield Static("Your Learning Analytics", id="stats-title")
            with Horizontal(classes="buttons"):
                yield Button("All", id="filter-all")
                for subject in Subject:
                    yield Button(subject.value.title(), id=f"filter-{subject.value}")
            yield Static("", id="stats-body")
            yield Button("Back", id="back")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_body()

    def refresh_body(self) -> None:
        user_id = self.navigator.user_id
        report = self.store.get_report(user_id)
        body = self.query_one("#stats-body", Static)
        if report is None:
            body.update("No gameplay data found. Start playing to see analytics!")
            return

        summary = (
            f"Total sessions: {report.total_sessions}\n"
            f"Total play time: {report.total_play_time}\n"
            f"Average score: {report.average_score:.1f}\n"
            f"Average accuracy: {report.average_accuracy * 100.0:.1f}%\n"
            f"Preferred subject: {report.preferred_subject}\n"
            f"Improvement rate: {report.improvement_rate * 100.0:.1f}%\n"
        )

        sessions = self.store.get_sessions(user_id=user_id, subject=self.subject_filter)

        by_game: dict[str, list[float]] = {}
        for session in sessions:
            by_game.setdefault(str(session.game_id), []).append(numeric(session.score))
        averages = Table(title="Average score per game", box=None, show_edge=False)
        averages.add_column("Game", no_wrap=True)
        averages.add_column("Avg Score", justify="right")
        for game_id, scores in by_game.items():
            averages.add_row(game_id.replace("-", " ").title(), f"{average(scores):.1f}")

        log = Table(show_header=True, box=None, show_edge=False, pad_edge=False)
        log.add_column("Date", width=18, no_wrap=True)
        log.add_column("Game", no_wrap=True)
        log.add_column("Subject")
        log.add_column("Score", justify="right")
        log.add_column("Accuracy", justify="right")
        for session in reversed(sessions):
            log.add_row(
                _format_date(session.start_time),
                str(session.game_id),
                session.subject_name.title(),
                str(session.score),
                f"{numeric(session.accuracy) * 100.0:.1f}%",
            )

        body.update(Group(summary, averages, "", log))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith("filter-"):
            chosen = button_id.removeprefix("filter-")
            self.subject_filter = None if chosen == "all" else chosen
            self.refresh_body()
        elif button_id == "back":
            self.action_back()

    def action_export(self) -> None:
        if self.export_path is None:
            return
        try:
            self.export_path.parent.mkdir(parents=True, exist_ok=True)
            self.export_path.write_text(self.store.export_sessions(self.navigator.user_id))
        except OSError as exc:
            logger.error("Could not export sessions to %s: %s", self.export_path, exc)
            self.notify(f"Export failed: {exc}", severity="error")
            return
        self.notify(f"Exported sessions to {self.export_path}")


def _format_date(iso_ts: str | dt.datetime) -> str:
    if isinstance(iso_ts, dt.datetime):
        parsed = iso_ts
    else:
        try:
            parsed = dt.datetime.fromisoformat(iso_ts)
        except (TypeError, ValueError):
            return str(iso_ts or "Unknown time")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%Y-%m-%d %H:%M")


class ArithmeticScreen(NavScreen):
    back_key = "gameSelect"
    game_id = "math-calc"
    subject = Subject.MATH

    def __init__(
        self,
        navigator: Navigator,
        params: dict[str, Any],
        store: StatsStore,
        adaptor: DifficultyAdaptor,
        window: int = 3,
        feedback_delay_s: float = 0.5,
    ) -> None:
        super().__init__(navigator, params)
        self.session = GameSession(
            store, adaptor, navigator.user_id, self.subject, self.game_id, window
        )
        self.quiz = ArithmeticQuiz(self.session.difficulty)
        self.feedback_delay_s = feedback_delay_s
        self.round = 0
        self.question = None

    def _back_params(self) -> dict[str, Any]:
        return {"subject": self.subject.value}

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="quiz"):
            yield Static("Arithmetic Dash", id="quiz-title")
            yield Static("", id="question")
            yield Horizontal(id="options", classes="buttons")
            yield Static("", id="info")
            with Horizontal(id="after", classes="buttons"):
                yield Button("Play Again", id="again", variant="primary")
                yield Button("Back to Games", id="back")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#after").display = False
        self.next_question()

    def _update_info(self) -> None:
        self.query_one("#info", Static).update(
            f"Score: {self.session.score} | Question {self.round} of {self.quiz.rounds}"
            f" | Level {self.session.difficulty}"
        )

    def next_question(self) -> None:
        options = self.query_one("#options", Horizontal)
        options.remove_children()
        if self.round >= self.quiz.rounds:
            self.end_game()
            return
        self.round += 1
        self.question = self.quiz.question()
        self.query_one("#question", Static).update(self.question.text)
        options.mount_all(
            Button(str(value), name=str(i), classes="option")
            for i, value in enumerate(self.question.options)
        )
        self._update_info()

    def end_game(self) -> None:
        record = self.session.finish()
        self.query_one("#question", Static).update(
            f"Game Over\nScore: {record.score}\nAccuracy: {record.accuracy * 100.0:.1f}%"
        )
        self.query_one("#after").display = True
        self.navigator.play_sound("success")
        self.navigator.emit("session-recorded", record)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if event.button.has_class("option"):
            for button in self.query("#options Button"):
                button.disabled = True
            chosen = self.question.options[int(event.button.name)]
            is_correct = chosen == self.question.correct
            self.session.answer(is_correct)
            self.navigator.play_sound("correct" if is_correct else "wrong")
            self._update_info()
            self.set_timer(self.feedback_delay_s, self.next_question)
        elif button_id == "again":
            self.navigator.navigate(self.game_id, self._back_params())
        elif button_id == "back":
            self.action_back()


class NotFoundScreen(Screen):
    BINDINGS = [("escape", "home", "Home")]

    def __init__(self, key: str) -> None:
        super().__init__()
        self.view_key = key

    @property
    def message(self) -> str:
        return f"View not found: {self.view_key}"

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="missing"):
            yield Static(self.message, id="not-found")
            yield Button("Home", id="home", variant="success")
        yield Footer()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "home":
            self.action_home()

    def action_home(self) -> None:
        self.app.navigator.navigate("home")


class StealthLearningApp(App):
    CSS = """
    #home, #select, #stats, #quiz, #missing {
        padding: 1 2;
    }

    #title {
        content-align: center middle;
        text-style: bold;
    }

    #subtitle {
        content-align: center middle;
        color: $text-muted;
        margin-bottom: 1;
    }

    .buttons {
        height: auto;
        margin-top: 1;
    }

    #question {
        height: auto;
        border: solid $primary;
        padding: 1;
    }

    #select-title, #stats-title, #quiz-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    TITLE = "Stealth Learning"

    def __init__(
        self,
        config: Config | None = None,
        analytics: Storage | None = None,
        identity: Storage | None = None,
    ) -> None:
        super().__init__()
        self.config = config or Config.from_env()
        self.store = StatsStore(analytics or FileStorage(self.config.analytics_path))
        self.adaptor = DifficultyAdaptor(
            DifficultyRules(
                promote_threshold=self.config.promote_threshold,
                demote_threshold=self.config.demote_threshold,
            )
        )
        self.navigator = Navigator(
            identity or FileStorage(self.config.user_id_path),
            presenter=self._present,
            not_found=NotFoundScreen,
            game_keys=[ArithmeticScreen.game_id],
        )
        self.last_quick_play: str | None = None

        self.navigator.register_view("home", ScreenFactory(HomeScreen))
        self.navigator.register_view("gameSelect", ScreenFactory(GameSelectScreen))
        self.navigator.register_view(
            "analytics",
            ScreenFactory(
                AnalyticsScreen,
                {"store": self.store, "export_path": self.config.data_dir / "stealth-export.json"},
            ),
        )
        self.navigator.register_view(
            ArithmeticScreen.game_id,
            ScreenFactory(
                ArithmeticScreen,
                {
                    "store": self.store,
                    "adaptor": self.adaptor,
                    "window": self.config.recent_window,
                    "feedback_delay_s": self.config.feedback_delay_s,
                },
            ),
        )
        for cue in ("correct", "wrong", "success"):
            self.navigator.register_sound(cue, self.bell)
        self.navigator.on("session-recorded", self._on_session_recorded)

    def _on_session_recorded(self, record) -> None:
        self.notify(f"Saved {record.game_id}: score {record.score}, level {record.difficulty}")

    def _present(self, screen: Screen) -> None:
        if len(self.screen_stack) <= 1:
            self.push_screen(screen)
        else:
            self.switch_screen(screen)

    def on_mount(self) -> None:
        self.navigator.navigate("home")

    def action_quick_play(self) -> None:
        key = pick_quick_play(self.navigator.game_keys, self.last_quick_play)
        if key is None:
            return
        self.last_quick_play = key
        self.navigator.navigate(key, {})


def main() -> None:
    config = Config.from_env()
    setup_logging(config)
    StealthLearningApp(config).run()


if __name__ == "__main__":
    main()
