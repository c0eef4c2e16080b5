"""
Data classes shared by the scanner, the store and the algorithms.

Every persisted record round-trips through to_dict/from_dict so the
JSON files stay plain and human readable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

# repetitions -> ease factor (rounded to 2 decimals) -> optimal factor
OptimalFactorMatrix = dict[int, dict[float, float]]

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Cards
# =============================================================================


@dataclass
class Card:
    """A flashcard recognized in a text file."""

    id: str
    file: Path
    line: int
    prompt: str
    response: list[str] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file": str(self.file),
            "line": self.line,
            "prompt": self.prompt,
            "response": list(self.response),
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Card:
        return cls(
            id=data["id"],
            file=Path(data["file"]),
            line=int(data["line"]),
            prompt=data["prompt"],
            response=list(data.get("response", [])),
            tags=set(data.get("tags", [])),
        )


@dataclass
class CardState:
    """Per-card algorithm state."""

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0  # Days until next review
    repetitions: int = 0  # Successful reviews since the last failure
    failed_count: int = 0

    def to_dict(self) -> dict:
        return {
            "ease_factor": self.ease_factor,
            "interval": self.interval,
            "repetitions": self.repetitions,
            "failed_count": self.failed_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CardState:
        return cls(
            ease_factor=float(data.get("ease_factor", DEFAULT_EASE_FACTOR)),
            interval=int(data.get("interval", 0)),
            repetitions=int(data.get("repetitions", 0)),
            failed_count=int(data.get("failed_count", 0)),
        )


@dataclass
class CardEntry:
    """A card bound to its algorithm state and review metadata."""

    card: Card
    state: CardState = field(default_factory=CardState)
    added: datetime = field(default_factory=utc_now)
    last_revised: datetime | None = None
    revise_count: int = 0
    leech: bool = False
    orphan: bool = False

    @property
    def id(self) -> str:
        return self.card.id

    def to_dict(self) -> dict:
        return {
            "added": format_timestamp(self.added),
            "card": self.card.to_dict(),
            "last_revised": format_timestamp(self.last_revised),
            "leech": self.leech,
            "orphan": self.orphan,
            "revise_count": self.revise_count,
            "state": self.state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CardEntry:
        return cls(
            card=Card.from_dict(data["card"]),
            state=CardState.from_dict(data.get("state", {})),
            added=parse_timestamp(data["added"]),
            last_revised=parse_timestamp(data.get("last_revised")),
            revise_count=int(data.get("revise_count", 0)),
            leech=bool(data.get("leech", False)),
            orphan=bool(data.get("orphan", False)),
        )


# =============================================================================
# Global State
# =============================================================================


@dataclass
class GlobalState:
    """Statistics shared across all cards."""

    optimal_factor_matrix: OptimalFactorMatrix = field(default_factory=dict)
    last_revise_session: datetime | None = None
    mean_q: float | None = None
    total_cards_revised: int = 0

    def to_dict(self) -> dict:
        return {
            "optimal_factor_matrix": {
                str(repetitions): {repr(ef): of for ef, of in factors.items()}
                for repetitions, factors in self.optimal_factor_matrix.items()
            },
            "last_revise_session": format_timestamp(self.last_revise_session),
            "mean_q": self.mean_q,
            "total_cards_revised": self.total_cards_revised,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GlobalState:
        matrix = {
            int(repetitions): {float(ef): float(of) for ef, of in factors.items()}
            for repetitions, factors in data.get("optimal_factor_matrix", {}).items()
        }
        mean_q = data.get("mean_q")
        return cls(
            optimal_factor_matrix=matrix,
            last_revise_session=parse_timestamp(data.get("last_revise_session")),
            mean_q=float(mean_q) if mean_q is not None else None,
            total_cards_revised=int(data.get("total_cards_revised", 0)),
        )
