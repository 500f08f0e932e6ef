"""League standings.

One standing row per (league, user). Points are added with a single
upsert that increments total_points, and the matching history entry is
written in the same transaction, so total_points always equals the sum of
the history.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import dialect_insert
from app.models.domain import Standing, StandingEntry, User

logger = structlog.get_logger(__name__)


@dataclass
class StandingUpdate:
    """Points earned by one user for one event category in one league."""

    league_id: str
    user_id: str
    event_id: int
    points: int
    category_id: int | None = None
    category_name: str | None = None

    def __post_init__(self):
        if not self.league_id or not self.user_id or not self.event_id:
            raise ValueError("Missing required parameters for updating standings")


@dataclass
class StandingAck:
    acknowledged: bool
    standing_id: int


@dataclass
class LeaderboardEntry:
    """One ranked row of a league leaderboard."""

    rank: int
    user_id: str
    user_name: str
    avatar_url: str | None
    total_points: int
    event_results: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "userId": self.user_id,
            "userName": self.user_name,
            "avatarUrl": self.avatar_url,
            "totalPoints": self.total_points,
            "eventResults": self.event_results,
        }


@dataclass
class Leaderboard:
    rankings: list[LeaderboardEntry]
    total: int


def standing_to_dict(standing: Standing) -> dict[str, Any]:
    """Serialise a standing in the API's camelCase shape."""
    return {
        "id": standing.id,
        "leagueId": standing.league_id,
        "userId": standing.user_id,
        "totalPoints": standing.total_points,
        "eventHistory": [entry.to_dict() for entry in standing.event_history],
        "lastUpdated": standing.last_updated.isoformat() if standing.last_updated else None,
        "createdAt": standing.created_at.isoformat() if standing.created_at else None,
    }


class StandingsStore:
    """Incremental per-league standings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def update(self, change: StandingUpdate) -> StandingAck:
        """
        Add points for one event category to a user's standing.

        Creates the standing on first score. Runs inside the caller's
        transaction; the caller commits.
        """
        now = datetime.now(timezone.utc)

        stmt = dialect_insert(self.session, Standing).values(
            league_id=change.league_id,
            user_id=change.user_id,
            total_points=change.points,
            created_at=now,
            last_updated=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["league_id", "user_id"],
            set_={
                "total_points": Standing.total_points + stmt.excluded.total_points,
                "last_updated": stmt.excluded.last_updated,
            },
        ).returning(Standing.id)
        result = await self.session.execute(stmt)
        standing_id = result.scalar_one()

        self.session.add(
            StandingEntry(
                standing_id=standing_id,
                event_id=change.event_id,
                category_id=change.category_id,
                category_name=change.category_name,
                points=change.points,
                recorded_at=now,
            )
        )
        await self.session.flush()

        logger.debug(
            "standing_updated",
            league_id=change.league_id,
            user_id=change.user_id,
            event_id=change.event_id,
            category_id=change.category_id,
            points=change.points,
        )
        return StandingAck(acknowledged=True, standing_id=standing_id)

    async def get_league_standings(self, league_id: str) -> list[Standing]:
        """All standings of a league, highest total first."""
        result = await self.session.execute(
            select(Standing)
            .where(Standing.league_id == league_id)
            .order_by(Standing.total_points.desc(), Standing.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_user_standing(self, league_id: str, user_id: str) -> Standing | None:
        result = await self.session.execute(
            select(Standing)
            .where(Standing.league_id == league_id, Standing.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_leaderboard(
        self,
        league_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> Leaderboard:
        """
        Ranked, paginated leaderboard.

        Ranks are positions in the sorted order (offset + 1 ... offset + N).
        """
        total_result = await self.session.execute(
            select(func.count(Standing.id)).where(Standing.league_id == league_id)
        )
        total = total_result.scalar() or 0

        result = await self.session.execute(
            select(Standing, User)
            .outerjoin(User, User.id == Standing.user_id)
            .where(Standing.league_id == league_id)
            .order_by(
                Standing.total_points.desc(),
                Standing.last_updated.desc(),
                Standing.id,
            )
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )

        rankings = [
            LeaderboardEntry(
                rank=offset + position,
                user_id=standing.user_id,
                user_name=user.username if user else standing.user_id,
                avatar_url=user.avatar_url if user else None,
                total_points=standing.total_points,
                event_results=[entry.to_dict() for entry in standing.event_history],
            )
            for position, (standing, user) in enumerate(result.all(), start=1)
        ]
        return Leaderboard(rankings=rankings, total=total)
