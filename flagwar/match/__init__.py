"""Match layer: session-based interface around the game engine."""

from flagwar.match.session import MatchSession, StatusError
from flagwar.match.session_manager import MatchManager

__all__ = [
    "MatchSession",
    "MatchManager",
    "StatusError",
]
