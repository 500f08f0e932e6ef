"""Podium scoring engine.

Scores a user's podium guess against the official podium of a category.

Per place (first, second, third):
- right athlete in the right place   -> exact points for that place
- podium athlete in the wrong place  -> in-podium points (only if configured)
- otherwise                          -> 0

The engine is pure: no I/O, no hidden state. Rules are passed in so the
same engine serves different leagues or events.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

PLACES = ("first", "second", "third")


@dataclass(frozen=True)
class Podium:
    """Three athlete ids in finishing order."""

    first: str
    second: str
    third: str

    def __post_init__(self):
        for place in PLACES:
            value = getattr(self, place)
            if value is None or not str(value).strip():
                raise ValueError(f"Podium is missing the {place} place")
            object.__setattr__(self, place, str(value).strip())

    @classmethod
    def from_ids(cls, athlete_ids) -> "Podium":
        """Build a podium from the first three ids of an ordered sequence."""
        ids = list(athlete_ids)
        if len(ids) < 3:
            raise ValueError(f"Podium needs 3 athletes, got {len(ids)}")
        return cls(first=ids[0], second=ids[1], third=ids[2])

    def at(self, place: str) -> str:
        return getattr(self, place)

    def to_dict(self) -> dict[str, str]:
        return {place: self.at(place) for place in PLACES}


@dataclass(frozen=True)
class PointsByPlace:
    """Points awarded per podium place."""

    first: int
    second: int
    third: int

    def __post_init__(self):
        for place in PLACES:
            if getattr(self, place) < 0:
                raise ValueError(f"Negative points for {place}")

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "PointsByPlace":
        missing = [p for p in PLACES if p not in config]
        if missing:
            raise ValueError(f"Missing points for: {', '.join(missing)}")
        return cls(**{p: int(config[p]) for p in PLACES})

    def at(self, place: str) -> int:
        return getattr(self, place)

    def to_dict(self) -> dict[str, int]:
        return {place: self.at(place) for place in PLACES}


@dataclass(frozen=True)
class ScoringRules:
    """Points table for a scoring run."""

    exact: PointsByPlace
    in_podium: PointsByPlace | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ScoringRules":
        """
        Build rules from a config mapping.

        Accepts ``in_podium`` or ``inPodium`` for the bonus table.
        """
        if "exact" not in config:
            raise ValueError("Scoring rules need an 'exact' points table")
        in_podium = config.get("in_podium", config.get("inPodium"))
        return cls(
            exact=PointsByPlace.from_config(config["exact"]),
            in_podium=PointsByPlace.from_config(in_podium) if in_podium else None,
        )


DEFAULT_RULES = ScoringRules(exact=PointsByPlace(first=20, second=15, third=10))


def load_default_rules(config_path: Path | None = None) -> ScoringRules:
    """Load scoring rules from defaults.yaml, falling back to DEFAULT_RULES."""
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "defaults.yaml"
    if config_path.exists():
        with open(config_path) as f:
            full_config = yaml.safe_load(f) or {}
        scoring = full_config.get("scoring")
        if scoring:
            return ScoringRules.from_config(scoring)
    return DEFAULT_RULES


@dataclass
class ScoreDetail:
    """Result of scoring one guess, with per-place breakdown."""

    points_by_place: PointsByPlace
    total: int
    calculated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    category_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored document shape."""
        data = {
            "calculatedAt": self.calculated_at.isoformat(),
            "pointsByPlace": self.points_by_place.to_dict(),
            "total": self.total,
        }
        if self.category_id is not None:
            data["categoryId"] = self.category_id
        return data


def calculate_podium_score(
    actual: Podium,
    guess: Podium,
    rules: ScoringRules,
    calculated_at: datetime | None = None,
) -> ScoreDetail:
    """
    Score a podium guess.

    Args:
        actual: Official podium
        guess: User's podium guess
        rules: Points table
        calculated_at: Timestamp to stamp on the result (defaults to now)

    Returns:
        ScoreDetail with per-place points and total
    """
    points = {}
    for place in PLACES:
        guessed = guess.at(place)
        if guessed == actual.at(place):
            points[place] = rules.exact.at(place)
        elif rules.in_podium is not None and any(
            guessed == actual.at(other) for other in PLACES if other != place
        ):
            points[place] = rules.in_podium.at(place)
        else:
            points[place] = 0

    by_place = PointsByPlace(**points)
    detail = ScoreDetail(
        points_by_place=by_place,
        total=sum(points.values()),
        calculated_at=calculated_at or datetime.now(timezone.utc),
    )
    return detail


class ScoringEngine:
    """
    Score podium guesses under a rule set.

    The rule set given at construction is the default for ``score``; a
    call may pass its own rules instead.
    """

    def __init__(self, rules: ScoringRules | None = None):
        self.rules = rules or DEFAULT_RULES

    def score(
        self,
        actual: Podium,
        guess: Podium,
        rules: ScoringRules | None = None,
    ) -> ScoreDetail:
        detail = calculate_podium_score(actual, guess, rules or self.rules)
        logger.debug(
            "podium_scored",
            actual=actual.to_dict(),
            guess=guess.to_dict(),
            total=detail.total,
        )
        return detail
