"""Draw settlement: symbols, matching, windows, locking and the engine."""

from .engine import DrawOutcome, SettlementEngine, classify_tickets
from .lock import AcquireStatus, DrawLockManager, LockAcquisition
from .matching import MatchOutcome, PrizeTier, evaluate
from .symbols import DEFAULT_SYMBOLS, SymbolPool, TICKET_LENGTH
from .window import WindowKey

__all__ = [
    "AcquireStatus",
    "DEFAULT_SYMBOLS",
    "DrawLockManager",
    "DrawOutcome",
    "LockAcquisition",
    "MatchOutcome",
    "PrizeTier",
    "SettlementEngine",
    "SymbolPool",
    "TICKET_LENGTH",
    "WindowKey",
    "classify_tickets",
    "evaluate",
]
