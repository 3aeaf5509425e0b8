from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .ticket import Ticket, TICKET_LENGTH  # noqa: F401
from .settlement import SettlementEntry, SettlementResult, TIER_NAMES  # noqa: F401
from .draw_lock import DrawLock, LockState  # noqa: F401
from .game_state import GameState, GAME_STATE_ID  # noqa: F401

__all__ = [
    "Base",
    "Ticket",
    "TICKET_LENGTH",
    "SettlementEntry",
    "SettlementResult",
    "TIER_NAMES",
    "DrawLock",
    "LockState",
    "GameState",
    "GAME_STATE_ID",
]
