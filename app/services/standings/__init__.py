"""League standings module."""

from app.services.standings.store import (
    Leaderboard,
    LeaderboardEntry,
    StandingAck,
    StandingsStore,
    StandingUpdate,
    standing_to_dict,
)

__all__ = [
    "Leaderboard",
    "LeaderboardEntry",
    "StandingAck",
    "StandingsStore",
    "StandingUpdate",
    "standing_to_dict",
]
