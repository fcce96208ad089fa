from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, asdict, field, fields
import datetime as dt
from enum import Enum
import json
import logging
from threading import Lock
from typing import Any

from metrics import average, format_duration, numeric
from storage import Storage


logger = logging.getLogger(__name__)


class Subject(str, Enum):
    MATH = "math"
    ENGLISH = "english"
    SCIENCE = "science"


def _parse_time(value: str | dt.datetime) -> dt.datetime | None:
    if isinstance(value, dt.datetime):
        parsed = value
    else:
        try:
            parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except (AttributeError, TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


@dataclass(frozen=True)
class SessionRecord:
    user_id: str
    subject: Subject | str
    game_id: str
    start_time: str | dt.datetime
    end_time: str | dt.datetime
    score: int
    accuracy: float
    difficulty: int
    hints_used: int = 0

    @property
    def duration_s(self) -> float:
        started = _parse_time(self.start_time)
        ended = _parse_time(self.end_time)
        if started is None or ended is None:
            return 0.0
        return max((ended - started).total_seconds(), 0.0)

    @property
    def subject_name(self) -> str:
        return str(getattr(self.subject, "value", self.subject))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["subject"] = self.subject_name
        for key in ("start_time", "end_time"):
            if isinstance(data[key], dt.datetime):
                data[key] = data[key].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRecord":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        try:
            values["subject"] = Subject(values["subject"])
        except (KeyError, TypeError, ValueError):
            # unknown subjects are kept verbatim
            pass
        return cls(**values)


@dataclass
class Report:
    total_sessions: int
    total_play_time_s: float
    average_score: float
    average_accuracy: float
    preferred_subject: str
    preferred_games: list[str] = field(default_factory=list)
    improvement_rate: float = 0.0

    @property
    def total_play_time(self) -> str:
        return format_duration(self.total_play_time_s)


def _ranked(values: list[str]) -> list[str]:
    # Counter.most_common keeps first-seen order among equal counts
    return [value for value, _ in Counter(values).most_common()]


class StatsStore:
    """Append-only ledger of finished game sessions for this device.

    The whole ledger is written back to storage after every append. A
    missing or unreadable payload starts an empty ledger instead of failing.
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self._lock = Lock()
        self._sessions: list[SessionRecord] = self._load()

    def _load(self) -> list[SessionRecord]:
        raw = self.storage.load()
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            entries = data["sessions"]
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning("Ignoring corrupt analytics data: %s", exc)
            return []
        if not isinstance(entries, list):
            logger.warning("Ignoring analytics data: sessions is not a list")
            return []

        sessions = []
        for entry in entries:
            try:
                sessions.append(SessionRecord.from_dict(entry))
            except (TypeError, AttributeError) as exc:
                logger.warning("Skipping malformed session entry %r: %s", entry, exc)
        logger.info("Loaded %d sessions", len(sessions))
        return sessions

    def _save(self) -> None:
        payload = {"sessions": [s.to_dict() for s in self._sessions]}
        try:
            self.storage.save(json.dumps(payload, indent=2, default=str).encode("utf-8"))
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Could not persist analytics, keeping sessions in memory: %s", exc)

    def record_session(self, record: SessionRecord) -> None:
        with self._lock:
            self._sessions.append(record)
            self._save()
        logger.debug("Recorded %s session for %s", record.game_id, record.user_id)

    def get_sessions(
        self, user_id: str | None = None, subject: str | None = None
    ) -> list[SessionRecord]:
        with self._lock:
            return [
                s
                for s in self._sessions
                if (user_id is None or s.user_id == user_id)
                and (subject is None or s.subject == subject)
            ]

    def get_report(self, user_id: str) -> Report | None:
        sessions = self.get_sessions(user_id=user_id)
        if not sessions:
            return None

        improvement = 0.0
        if len(sessions) > 1:
            first, last = numeric(sessions[0].score), numeric(sessions[-1].score)
            improvement = (last - first) / max(first, 1)

        subjects = _ranked([s.subject_name for s in sessions])
        return Report(
            total_sessions=len(sessions),
            total_play_time_s=sum(s.duration_s for s in sessions),
            average_score=average([numeric(s.score) for s in sessions]),
            average_accuracy=average([numeric(s.accuracy) for s in sessions]),
            preferred_subject=subjects[0],
            preferred_games=_ranked([str(s.game_id) for s in sessions]),
            improvement_rate=improvement,
        )

    def export_sessions(self, user_id: str | None = None) -> str:
        sessions = self.get_sessions(user_id=user_id)
        return json.dumps({"sessions": [s.to_dict() for s in sessions]}, indent=2, default=str)
