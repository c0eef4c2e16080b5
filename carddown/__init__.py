"""
carddown: spaced repetition for flashcards kept in text files.

Components:
- CardParser: Card extraction from markdown/text files
- CardStore: JSON persistence of cards and review state
- Algorithm: SM2, SM5 and Simple8 scheduling models
- SessionScheduler: Due card selection for a revise session
- ReviewSession: Grading loop with a single completion callback
- InstanceLock: Cross-process exclusivity
- ScanIndex: Incremental rescans
"""

from .algorithm import (
    Algorithm,
    Quality,
    SM2Algorithm,
    SM5Algorithm,
    Simple8Algorithm,
    new_algorithm,
    update_mean_q,
)
from .cards import CardParser
from .exceptions import CardNotFoundError, CarddownError, LockError, PersistenceError
from .locking import InstanceLock
from .models import Card, CardEntry, CardState, GlobalState
from .scan_index import ScanIndex
from .scheduler import LeechPolicy, SessionOptions, SessionScheduler, is_due
from .session import ReviewSession, make_completion
from .store import CardStore, GlobalStateStore, ReconcileReport, refresh_global_state

__version__ = "0.2.0"

__all__ = [
    # Models
    "Card",
    "CardEntry",
    "CardState",
    "GlobalState",
    # Algorithms
    "Algorithm",
    "Quality",
    "SM2Algorithm",
    "SM5Algorithm",
    "Simple8Algorithm",
    "new_algorithm",
    "update_mean_q",
    # Persistence
    "CardStore",
    "GlobalStateStore",
    "ReconcileReport",
    "refresh_global_state",
    "ScanIndex",
    "InstanceLock",
    # Scanning
    "CardParser",
    # Scheduling
    "LeechPolicy",
    "SessionOptions",
    "SessionScheduler",
    "is_due",
    "ReviewSession",
    "make_completion",
    # Errors
    "CarddownError",
    "CardNotFoundError",
    "LockError",
    "PersistenceError",
]
