"""
Review session controller.

Walks a batch of card entries, applies quality grades through the
selected algorithm and hands the results to a completion callback
exactly once when the session ends, whichever way it ends.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from .algorithm import Algorithm, Quality, update_mean_q
from .models import CardEntry, GlobalState, utc_now
from .store import CardStore, GlobalStateStore

CompletionCallback = Callable[[list[CardEntry], GlobalState], None]


@dataclass
class SessionStats:
    """Summary of a finished session."""

    reviewed: int = 0
    failed: int = 0
    new_leeches: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def accuracy_percent(self) -> float:
        if not self.reviewed:
            return 0.0
        return 100.0 * (self.reviewed - self.failed) / self.reviewed


class ReviewSession:
    """
    Drives one revise session over a selected card batch.

    Usage:
        session = ReviewSession(cards, algorithm, global_state, on_complete)
        try:
            while not session.done:
                ... show session.current, read a grade ...
                session.grade(quality)
        finally:
            session.finish()
    """

    def __init__(
        self,
        entries: list[CardEntry],
        algorithm: Algorithm,
        global_state: GlobalState,
        on_complete: CompletionCallback,
        leech_threshold: int = 15,
        max_duration: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.entries = entries
        self.algorithm = algorithm
        self.global_state = global_state
        self.on_complete = on_complete
        self.leech_threshold = leech_threshold
        self.max_duration = max_duration
        self.clock = clock

        self.position = 0
        self.stats = SessionStats()
        self._started = clock()
        self._finished = False

    @property
    def current(self) -> CardEntry | None:
        if self.position < len(self.entries):
            return self.entries[self.position]
        return None

    @property
    def remaining(self) -> int:
        return len(self.entries) - self.position

    @property
    def elapsed(self) -> float:
        return self.clock() - self._started

    @property
    def expired(self) -> bool:
        return self.max_duration is not None and self.elapsed >= self.max_duration

    @property
    def done(self) -> bool:
        return self._finished or self.current is None or self.expired

    def grade(self, quality: Quality) -> CardEntry:
        """
        Record a review of the current card and move to the next one.

        Returns:
            The updated entry
        """
        entry = self.current
        if entry is None:
            raise IndexError("No card left to grade in this session")

        update_mean_q(self.global_state, quality)
        failed_before = entry.state.failed_count
        self.algorithm.update_state(quality, entry.state, self.global_state)
        # Every failed grade counts towards the leech threshold, whichever
        # algorithm is in use
        if quality.failed() and entry.state.failed_count == failed_before:
            entry.state.failed_count += 1

        entry.last_revised = utc_now()
        entry.revise_count += 1
        if not entry.leech and entry.state.failed_count >= self.leech_threshold:
            entry.leech = True
            self.stats.new_leeches.append(entry.id)
            logger.warning(f"Card {entry.id[:12]} marked as a leech")

        self.stats.reviewed += 1
        if quality.failed():
            self.stats.failed += 1

        logger.debug(
            f"Graded {entry.id[:12]}: quality={int(quality)}, "
            f"interval={entry.state.interval}d, ef={entry.state.ease_factor:.2f}"
        )
        self.position += 1
        return entry

    def reviewed_entries(self) -> list[CardEntry]:
        return self.entries[: self.position]

    def finish(self) -> SessionStats:
        """Invoke the completion callback; later calls do nothing."""
        if self._finished:
            return self.stats
        self._finished = True
        self.stats.duration_seconds = self.elapsed
        self.on_complete(self.reviewed_entries(), self.global_state)
        return self.stats


def make_completion(
    card_store: CardStore,
    global_store: GlobalStateStore,
    cram: bool = False,
) -> CompletionCallback:
    """Build the callback that persists a session's results."""

    def complete(entries: list[CardEntry], global_state: GlobalState) -> None:
        if cram:
            logger.info("Cram mode: review results are not saved")
            return
        card_store.upsert_many(entries)
        global_store.save(global_state)
        logger.info(f"Saved {len(entries)} reviewed cards")

    return complete
