"""Standings and leaderboard endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db
from app.services.standings import StandingsStore, standing_to_dict

router = APIRouter(tags=["standings"])


@router.get("/api/standings/league/{league_id}")
async def league_standings(
    league_id: str,
    db: AsyncSession = Depends(get_db),
):
    """All standings of a league, highest total first."""
    standings = await StandingsStore(db).get_league_standings(league_id)
    return {"standings": [standing_to_dict(s) for s in standings]}


@router.get("/api/standings/league/{league_id}/user/{user_id}")
async def user_standing(
    league_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
):
    """One user's standing in a league, or null before their first score."""
    standing = await StandingsStore(db).get_user_standing(league_id, user_id)
    return {"standing": standing_to_dict(standing) if standing else None}


@router.get("/api/leagues/{league_id}/leaderboard")
async def leaderboard(
    league_id: str,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """
    Ranked league leaderboard.

    Ties on points are broken by most recent update.
    """
    board = await StandingsStore(db).get_leaderboard(league_id, limit=limit, offset=offset)
    return {
        "rankings": [entry.to_dict() for entry in board.rankings],
        "total": board.total,
    }
