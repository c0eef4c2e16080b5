"""
Spaced Repetition Algorithms.

Implements:
- SM2: the classic SuperMemo 2 two-parameter model
- SM5: SuperMemo 5 with a learned optimal-factor matrix kept in GlobalState
- Simple8: an empirically fitted eight-parameter model

Quality Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from enum import IntEnum

from .models import MIN_EASE_FACTOR, CardState, GlobalState, OptimalFactorMatrix

# Largest interval representable as an unsigned 64-bit day count
MAX_INTERVAL = 2**64 - 1


class Quality(IntEnum):
    """How easily the information was remembered during a review."""

    INCORRECT_AND_FORGOTTEN = 0
    INCORRECT_BUT_REMEMBERED = 1
    INCORRECT_BUT_EASY_TO_RECALL = 2
    CORRECT_WITH_DIFFICULTY = 3
    CORRECT_WITH_HESITATION = 4
    PERFECT = 5

    def failed(self) -> bool:
        return self <= Quality.INCORRECT_BUT_EASY_TO_RECALL

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").capitalize()


# =============================================================================
# Shared Helpers
# =============================================================================


def new_ease_factor(quality: Quality, ease_factor: float) -> float:
    """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3."""
    q = 5 - int(quality)
    return max(MIN_EASE_FACTOR, ease_factor + 0.1 - q * (0.08 + q * 0.02))


def update_mean_q(global_state: GlobalState, quality: Quality) -> None:
    """Fold one review into the running mean quality."""
    q = float(int(quality))
    total = global_state.total_cards_revised
    if global_state.mean_q is None:
        global_state.mean_q = q
    else:
        global_state.mean_q = (total * global_state.mean_q + q) / (total + 1)
    global_state.total_cards_revised = total + 1


def round_float(value: float, digits: int) -> float:
    """Round half away from zero to a fixed number of decimals."""
    factor = 10.0**digits
    return _round_half_away(value * factor) / factor


def _round_half_away(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


def to_interval(value: float) -> int:
    """
    Convert a float interval to whole days.

    Rounds half away from zero and saturates to [0, MAX_INTERVAL]
    instead of overflowing. NaN maps to 0.
    """
    if math.isnan(value) or value <= 0:
        return 0
    if value >= MAX_INTERVAL:
        return MAX_INTERVAL
    return min(int(_round_half_away(value)), MAX_INTERVAL)


# =============================================================================
# Algorithm Interface
# =============================================================================


class Algorithm(ABC):
    """Computes the next CardState (and possibly GlobalState) from a review."""

    name: str = ""

    @abstractmethod
    def update_state(
        self,
        quality: Quality,
        state: CardState,
        global_state: GlobalState,
    ) -> None:
        """Mutate state (and global_state where the model learns) in place."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SM2Algorithm(Algorithm):
    """
    Implements the SM-2 spaced repetition algorithm.

    Each card has:
    - Easiness Factor (EF): How easy the item is (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetitions: Consecutive correct recalls
    """

    name = "SM2"

    def update_state(self, quality, state, global_state):
        if quality.failed():
            # Failed - reset to beginning, EF untouched
            state.repetitions = 0
            state.interval = 0
            state.failed_count += 1
            return

        if state.repetitions == 0:
            state.interval = 1
        elif state.repetitions == 1:
            state.interval = 6
        else:
            state.interval = to_interval(state.interval * state.ease_factor)

        state.repetitions += 1
        state.ease_factor = new_ease_factor(quality, state.ease_factor)


class SM5Algorithm(Algorithm):
    """
    SuperMemo 5 with a learned matrix of optimal factors.

    The matrix is updated on every review, including failures, while a
    failed review leaves the card's own ease factor as it was.
    """

    name = "SM5"

    # How quickly the optimal factors move towards new evidence
    FRACTION = 0.5

    def update_state(self, quality, state, global_state):
        matrix = global_state.optimal_factor_matrix
        new_ef = new_ease_factor(quality, state.ease_factor)

        of = get_optimal_factor(state.repetitions, state.ease_factor, matrix)
        set_optimal_factor(
            state.repetitions,
            new_ef,
            self.new_optimal_factor(of, quality),
            matrix,
        )

        if quality.failed():
            state.repetitions = 0
            state.interval = 0
            return

        of = get_optimal_factor(state.repetitions, new_ef, matrix)
        if state.repetitions == 0:
            state.interval = to_interval(of)
        else:
            state.interval = to_interval(state.interval * of)
        state.repetitions += 1
        state.ease_factor = new_ef

    def new_optimal_factor(self, optimal_factor: float, quality: Quality) -> float:
        target = optimal_factor * (0.72 + int(quality) * 0.07)
        return (1 - self.FRACTION) * optimal_factor + self.FRACTION * target


def get_optimal_factor(
    repetitions: int,
    ease_factor: float,
    matrix: OptimalFactorMatrix,
) -> float:
    """Look up a learned factor; unseen pairs start at 4.0 (first review) or EF."""
    factors = matrix.get(repetitions, {})
    key = round_float(ease_factor, 2)
    if key in factors:
        return factors[key]
    return 4.0 if repetitions == 0 else ease_factor


def set_optimal_factor(
    repetitions: int,
    ease_factor: float,
    optimal_factor: float,
    matrix: OptimalFactorMatrix,
) -> None:
    matrix.setdefault(repetitions, {})[round_float(ease_factor, 2)] = optimal_factor


class Simple8Algorithm(Algorithm):
    """
    Eight-parameter model fitted on review data.

    The first interval shrinks with the card's failure history; later
    intervals grow by a factor derived from the running mean quality.
    """

    name = "Simple8"

    def update_state(self, quality, state, global_state):
        if quality.failed():
            state.repetitions = 0
            state.interval = 0
            state.failed_count += 1
        elif state.repetitions == 0 or state.interval == 0:
            state.interval = to_interval(first_interval(state.failed_count))
            state.repetitions += 1
        else:
            q = global_state.mean_q if global_state.mean_q is not None else float(int(quality))
            factor = interval_factor(quality_to_ease(q), state.repetitions)
            state.interval = to_interval(state.interval * factor)
            state.repetitions += 1


def first_interval(failed_count: int) -> float:
    """Optimal first interval for a card that has failed failed_count times."""
    return 2.4849 * math.exp(-0.057 * failed_count)


def interval_factor(ease: float, repetitions: int) -> float:
    # log2(0) is treated as 0 so a zero repetition count yields the ease itself
    log_r = math.log2(repetitions) if repetitions > 0 else 0.0
    return 1.2 + (ease - 1.2) * 0.5**log_r


def quality_to_ease(q: float) -> float:
    return 0.0542 * q**4 - 0.4848 * q**3 + 1.4916 * q**2 - 1.2403 * q + 1.4515


# =============================================================================
# Factory
# =============================================================================

ALGORITHMS: dict[str, type[Algorithm]] = {
    "sm2": SM2Algorithm,
    "sm5": SM5Algorithm,
    "simple8": Simple8Algorithm,
}


def new_algorithm(name: str) -> Algorithm:
    """Create an algorithm by its configuration name."""
    try:
        return ALGORITHMS[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown algorithm '{name}' (expected one of: {', '.join(ALGORITHMS)})"
        ) from None
