"""
Scan index: remembers file modification times between scans.

An incremental scan only re-parses files whose mtime moved past the
recorded value. Every considered file is restamped, changed or not.
A missing or corrupt index behaves like an empty one.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from .exceptions import PersistenceError
from .store import atomic_write


class ScanIndex:
    """Absolute path -> last-seen modification time (epoch seconds)."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.entries: dict[str, int] = {}

    def load(self) -> ScanIndex:
        try:
            data = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No scan index found, treating scan as a first run")
            self.entries = {}
            return self
        except OSError as e:
            raise PersistenceError(f"Error reading ({e.strerror})", self.path) from e

        try:
            raw = json.loads(data)
            self.entries = {str(k): int(v) for k, v in raw.items()}
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Scan index {self.path} is corrupt ({e}), starting empty")
            self.entries = {}
        return self

    def save(self) -> None:
        atomic_write(self.path, json.dumps(self.entries, sort_keys=True))

    @staticmethod
    def key(file: Path) -> str:
        return str(Path(file).resolve())

    @staticmethod
    def mtime(file: Path) -> int:
        return int(Path(file).stat().st_mtime)

    def changed(self, file: Path, mtime: int) -> bool:
        """True when the file is new to the index or was modified since."""
        recorded = self.entries.get(self.key(file))
        return recorded is None or mtime > recorded

    def stamp(self, file: Path, mtime: int) -> None:
        self.entries[self.key(file)] = mtime

    def select_files(self, files: Iterable[Path], full: bool) -> list[Path]:
        """
        Decide which files need parsing and restamp all of them.

        Args:
            files: Every candidate file found under the scan root
            full: Parse everything, ignoring recorded mtimes

        Returns:
            Files to parse, in input order
        """
        selected = []
        for file in files:
            mtime = self.mtime(file)
            if full or self.changed(file, mtime):
                selected.append(file)
            self.stamp(file, mtime)
        return selected
