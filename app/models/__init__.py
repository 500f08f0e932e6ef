"""Database models for CragPicks."""

from app.models.base import Base, async_session_factory, engine
from app.models.domain import (
    CategoryDescriptor,
    CategoryResult,
    Event,
    JobRun,
    Prediction,
    RankingEntry,
    Standing,
    StandingEntry,
    User,
)

__all__ = [
    # Base
    "Base",
    "engine",
    "async_session_factory",
    # Domain models
    "Event",
    "CategoryResult",
    "Prediction",
    "Standing",
    "StandingEntry",
    "User",
    "JobRun",
    # Value types
    "CategoryDescriptor",
    "RankingEntry",
]
