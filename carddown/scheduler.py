"""
Session scheduling: picks the due cards for a revise session.

Filter order:
1. Due (never revised, interval elapsed, or cram threshold elapsed)
2. Tag intersection (when tags were requested)
3. Orphans (only when explicitly included)
4. Leeches (skipped, or kept with a warning)

The surviving cards are shuffled and capped at the session maximum.
"""

from __future__ import annotations

import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from loguru import logger

from .models import CardEntry, utc_now


class LeechPolicy(str, Enum):
    """What to do with leech cards in a revise session."""

    SKIP = "skip"
    WARN = "warn"


@dataclass
class SessionOptions:
    """Configuration for selecting a revise session."""

    tags: set[str] = field(default_factory=set)
    include_orphans: bool = False
    leech_policy: LeechPolicy = LeechPolicy.SKIP
    cram: bool = False
    cram_hours: int = 12
    max_cards: int = 30
    max_duration: int = 20 * 60  # Seconds, enforced by the review session

    def __post_init__(self):
        if self.max_cards < 1:
            raise ValueError(f"max_cards must be at least 1, got {self.max_cards}")
        if self.max_duration < 1:
            raise ValueError(f"max_duration must be at least 1, got {self.max_duration}")
        if self.cram_hours < 0:
            raise ValueError(f"cram_hours must not be negative, got {self.cram_hours}")


def is_due(
    entry: CardEntry,
    now: datetime,
    cram: bool = False,
    cram_hours: int = 12,
) -> bool:
    """Check if a card is due for review at `now`."""
    if entry.last_revised is None:
        return True  # Never reviewed = due

    if cram:
        return now - entry.last_revised >= timedelta(hours=cram_hours)

    try:
        next_review = entry.last_revised + timedelta(days=entry.state.interval)
    except OverflowError:
        return False
    return now >= next_review


class SessionScheduler:
    """Filters a store snapshot down to the cards for one session."""

    def __init__(self, options: SessionOptions | None = None, rng: random.Random | None = None):
        self.options = options or SessionOptions()
        self.rng = rng or random.Random()

    def due_entries(self, entries: Iterable[CardEntry], now: datetime | None = None) -> list[CardEntry]:
        """Apply every filter without shuffling or truncating."""
        now = now or utc_now()
        opts = self.options

        selected = [e for e in entries if is_due(e, now, opts.cram, opts.cram_hours)]
        if opts.tags:
            selected = [e for e in selected if e.card.tags & opts.tags]
        if not opts.include_orphans:
            selected = [e for e in selected if not e.orphan]
        if opts.leech_policy is LeechPolicy.SKIP:
            selected = [e for e in selected if not e.leech]
        return selected

    def select(self, entries: Iterable[CardEntry], now: datetime | None = None) -> list[CardEntry]:
        """
        Build the card batch for a revise session.

        Returns:
            Shuffled due entries, at most options.max_cards long
        """
        selected = self.due_entries(entries, now)
        self.rng.shuffle(selected)
        batch = selected[: self.options.max_cards]

        logger.debug(f"Selected {len(batch)} of {len(selected)} due cards")
        return batch
