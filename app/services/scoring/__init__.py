"""Scoring module for CragPicks."""

from app.services.scoring.engine import (
    DEFAULT_RULES,
    Podium,
    PointsByPlace,
    ScoreDetail,
    ScoringEngine,
    ScoringRules,
    calculate_podium_score,
)

__all__ = [
    "DEFAULT_RULES",
    "Podium",
    "PointsByPlace",
    "ScoreDetail",
    "ScoringEngine",
    "ScoringRules",
    "calculate_podium_score",
]
