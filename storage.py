from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol


logger = logging.getLogger(__name__)


class Storage(Protocol):
    def load(self) -> bytes | None: ...

    def save(self, data: bytes) -> None: ...


class FileStorage:
    """One durable key backed by one file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> bytes | None:
        if not self.path.exists():
            return None
        try:
            return self.path.read_bytes()
        except OSError as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            return None

    def save(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(data)


class MemoryStorage:
    def __init__(self, initial: bytes | None = None, fail_saves: bool = False) -> None:
        self.data = initial
        self.fail_saves = fail_saves
        self.saves = 0

    def load(self) -> bytes | None:
        return self.data

    def save(self, data: bytes) -> None:
        if self.fail_saves:
            raise OSError("storage unavailable")
        self.data = data
        self.saves += 1
