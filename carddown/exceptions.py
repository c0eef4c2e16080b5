"""Exceptions raised by carddown."""

from __future__ import annotations

from pathlib import Path


class CarddownError(Exception):
    """Base class for all carddown errors."""
    pass


class PersistenceError(CarddownError):
    """Raised when a data file cannot be read, written or renamed."""

    def __init__(self, message: str, path: Path | str):
        self.path = Path(path)
        super().__init__(f"{message}: {self.path}")


class CardNotFoundError(CarddownError):
    """Raised when a card id is not present in the store."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card with id {card_id} not found")


class LockError(CarddownError):
    """Raised when another carddown process holds the instance lock."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(
            f"Another instance is running (lock file {self.path}). "
            "Use --force to remove a stale lock."
        )
