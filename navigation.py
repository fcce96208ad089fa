"""Process-wide navigation: player identity, view registry and sound cues.

Exactly one view is presented at a time. ``navigate`` clears the current
view before building the next one, so a game that is left half way simply
disappears without recording anything.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Iterable, Protocol
import uuid

from storage import Storage


logger = logging.getLogger(__name__)

USER_ID_PREFIX = "u-"


class ViewFactory(Protocol):
    def build(self, navigator: "Navigator", params: dict[str, Any]) -> Any: ...


@dataclass
class NotFoundView:
    key: str

    @property
    def message(self) -> str:
        return f"View not found: {self.key}"


def load_user_id(storage: Storage) -> str:
    raw = storage.load()
    if raw:
        user_id = raw.decode("utf-8", errors="replace").strip()
        if user_id:
            return user_id

    user_id = USER_ID_PREFIX + uuid.uuid4().hex[:8]
    try:
        storage.save(user_id.encode("utf-8"))
    except OSError as exc:
        logger.warning("Could not persist user id, using %s for this run: %s", user_id, exc)
    else:
        logger.info("Generated new user id %s", user_id)
    return user_id


class Navigator:
    def __init__(
        self,
        identity: Storage,
        presenter: Callable[[Any], None] | None = None,
        not_found: Callable[[str], Any] = NotFoundView,
        game_keys: Iterable[str] = (),
    ) -> None:
        self.user_id = load_user_id(identity)
        self.presenter = presenter
        self.not_found = not_found
        self.game_keys = list(game_keys)
        self.views: dict[str, ViewFactory] = {}
        self.sounds: dict[str, Callable[[], None]] = {}
        self.events: dict[str, list[Callable[[Any], None]]] = {}
        self.current_key: str | None = None
        self.current_view: Any = None

    def register_view(self, key: str, factory: ViewFactory) -> None:
        self.views[key] = factory

    def navigate(self, key: str, params: dict[str, Any] | None = None) -> Any:
        self.current_key = None
        self.current_view = None

        factory = self.views.get(key)
        if factory is None:
            logger.warning("Navigation to unknown view %r", key)
            view = self.not_found(key)
        else:
            view = factory.build(self, dict(params or {}))
            self.current_key = key

        self.current_view = view
        if self.presenter is not None:
            self.presenter(view)
        return view

    def register_sound(self, name: str, cue: Callable[[], None]) -> None:
        self.sounds[name] = cue

    def play_sound(self, name: str) -> None:
        cue = self.sounds.get(name)
        if cue is None:
            return
        try:
            cue()
        except Exception as exc:  # audio is cosmetic
            logger.debug("Sound %r failed: %s", name, exc)

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.events.setdefault(event, []).append(handler)

    def emit(self, event: str, data: Any = None) -> None:
        for handler in list(self.events.get(event, [])):
            try:
                handler(data)
            except Exception:
                logger.exception("Handler for %r failed", event)
