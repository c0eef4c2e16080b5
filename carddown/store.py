"""
JSON State Store for carddown.

Provides portable persistence for:
- Card entries (card content + algorithm state + review metadata)
- Global state (running mean quality, learned optimal factors)

Each data set is a single JSON file that is loaded fully into memory and
rewritten wholesale on every mutation. Writes go through a temp file that
is fsynced and renamed over the target, so readers never observe a
partially written file. Files that cannot be parsed are treated as empty.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from loguru import logger

from .exceptions import CardNotFoundError, PersistenceError
from .models import Card, CardEntry, GlobalState, utc_now

CardDb = dict[str, CardEntry]

# Mean quality is only meaningful for recent sessions
GLOBAL_STATE_RESET_AFTER = timedelta(weeks=1)


# =============================================================================
# File Helpers
# =============================================================================


def atomic_write(path: Path, content: str) -> None:
    """Atomically write content to a file using temp file + rename."""
    path = Path(path)
    temp_path = path.with_name(path.name + ".tmp")

    try:
        # Clean up any temp file left behind by a crash
        temp_path.unlink(missing_ok=True)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise PersistenceError(f"Failed to write temp file ({e.strerror})", temp_path) from e

    try:
        os.replace(temp_path, path)
    except OSError as e:
        raise PersistenceError(f"Failed to rename {temp_path} ({e.strerror})", path) from e


def _read_text(path: Path) -> str | None:
    """Read a data file; None when it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise PersistenceError(f"Error reading ({e.strerror})", path) from e


# =============================================================================
# Card Store
# =============================================================================


@dataclass
class ReconcileReport:
    """Counters produced by CardStore.reconcile."""

    new: int = 0
    updated: int = 0
    orphaned: int = 0
    unorphaned: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.new or self.updated or self.orphaned or self.unorphaned)


class CardStore:
    """
    Durable map from card id to CardEntry.

    Handles:
    - Tolerant loading (missing, empty or corrupt files load as empty)
    - Atomic whole-file saves
    - Reconciliation against freshly scanned cards
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> CardDb:
        """
        Load every entry from disk.

        Returns:
            Mapping of card id to CardEntry (empty if the file is missing or unusable)
        """
        data = _read_text(self.path)
        if data is None:
            logger.info(f"No card store found at {self.path}, starting empty")
            return {}
        if not data.strip():
            logger.warning(f"Card store {self.path} is empty, starting empty")
            return {}

        try:
            entries = [CardEntry.from_dict(record) for record in json.loads(data)]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Card store {self.path} is corrupt ({e}), starting empty")
            return {}

        return {entry.card.id: entry for entry in entries}

    def save(self, db: CardDb) -> None:
        """Write all entry values (not keys) to disk."""
        content = json.dumps([entry.to_dict() for entry in db.values()], ensure_ascii=False)
        atomic_write(self.path, content)

    def delete(self, card_id: str) -> None:
        """
        Remove a card entry.

        Raises:
            CardNotFoundError: If no entry has this id (the file is left untouched)
        """
        db = self.load()
        if db.pop(card_id, None) is None:
            raise CardNotFoundError(card_id)
        self.save(db)
        logger.info(f"Deleted card {card_id}")

    def upsert_many(self, entries: Iterable[CardEntry]) -> None:
        """Insert or replace entries in order; the last write per id wins."""
        db = self.load()
        for entry in entries:
            db[entry.card.id] = entry
        self.save(db)

    def reconcile(self, found: list[Card], full: bool) -> ReconcileReport:
        """
        Merge freshly scanned cards into the store.

        Args:
            found: Cards produced by the scanner
            full: Whether found covers every card (enables orphan marking)

        Returns:
            ReconcileReport with what changed
        """
        report = ReconcileReport()
        if not found:
            logger.info("No cards to add to the store")
            return report

        db = self.load()
        found_by_id = {card.id: card for card in found}

        for card_id, card in found_by_id.items():
            entry = db.get(card_id)
            if entry is None:
                db[card_id] = CardEntry(card=card)
                report.new += 1
                continue
            if entry.card != card:
                entry.card = card
                report.updated += 1
            if entry.orphan:
                entry.orphan = False
                report.unorphaned += 1

        if full:
            for card_id, entry in db.items():
                if card_id not in found_by_id and not entry.orphan:
                    entry.orphan = True
                    report.orphaned += 1

        if report.new:
            logger.info(f"Inserted {report.new} new cards")
        else:
            logger.info("No new cards found")
        if report.updated:
            logger.info(f"Updated {report.updated} cards")
        if report.orphaned:
            logger.warning(f"Found {report.orphaned} orphaned cards")
        if report.unorphaned:
            logger.info(f"Unorphaned {report.unorphaned} cards")

        if report.changed:
            self.save(db)
        return report


# =============================================================================
# Global State
# =============================================================================


class GlobalStateStore:
    """Loads and saves GlobalState with the same policy as CardStore."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> GlobalState:
        data = _read_text(self.path)
        if data is None:
            logger.info("No global state found, using default")
            return GlobalState()

        try:
            return GlobalState.from_dict(json.loads(data))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Global state corrupted ({e}), creating a new one")
            return GlobalState()

    def save(self, state: GlobalState) -> None:
        atomic_write(self.path, json.dumps(state.to_dict()))


def refresh_global_state(state: GlobalState, now: datetime | None = None) -> GlobalState:
    """
    Start a new revise session.

    Resets the running mean quality when the last session is more than a
    week old, then stamps the session time.
    """
    now = now or utc_now()
    last = state.last_revise_session
    if last is not None and now - last > GLOBAL_STATE_RESET_AFTER:
        logger.info("Resetting mean_q and total_cards_revised")
        state.mean_q = None
        state.total_cards_revised = 0
    state.last_revise_session = now
    return state
