"""Domain models for CragPicks.

Events and category results mirror documents from the results provider.
Predictions are written by the user-facing collaborator and flipped to
finished exactly once by the scoring run. Standings aggregate scored points
per (league, user).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONDocument, TimestampMixin

CATEGORY_FINISHED = "finished"


@dataclass(frozen=True)
class CategoryDescriptor:
    """One category (dcat) of an event as described by the provider."""

    category_id: int
    name: str
    status: str
    results_url: str | None = None

    @classmethod
    def from_provider(cls, data: dict[str, Any]) -> "CategoryDescriptor":
        return cls(
            category_id=int(data["dcat_id"]),
            name=data.get("dcat_name") or data.get("category_name") or "",
            status=(data.get("status") or "pending").lower(),
            results_url=data.get("full_results_url") or None,
        )

    @property
    def is_finished(self) -> bool:
        return self.status == CATEGORY_FINISHED


@dataclass(frozen=True)
class RankingEntry:
    """One athlete row of a category ranking."""

    rank: int | None
    athlete_id: str
    name: str
    country: str | None = None
    score: str | None = None

    @classmethod
    def from_provider(cls, data: dict[str, Any]) -> "RankingEntry":
        name = data.get("name")
        if not name:
            name = " ".join(
                part for part in (data.get("firstname"), data.get("lastname")) if part
            )
        rank = data.get("rank", data.get("place"))
        score = data.get("score")
        return cls(
            rank=int(rank) if rank is not None else None,
            athlete_id=str(data["athlete_id"]),
            name=name,
            country=data.get("country"),
            score=str(score) if score is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "athlete_id": self.athlete_id,
            "name": self.name,
            "country": self.country,
            "score": self.score,
        }


class Event(Base, TimestampMixin):
    """
    Competition event cached from the provider.

    The primary key is the provider's numeric event id. ``categories`` holds
    the provider ``d_cats`` list in provider order.
    """

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    starts_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    ends_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    categories: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )

    __table_args__ = (Index("idx_events_starts_at", "starts_at"),)

    @property
    def category_descriptors(self) -> list[CategoryDescriptor]:
        return [CategoryDescriptor.from_provider(c) for c in self.categories or []]

    @property
    def has_unfinished_categories(self) -> bool:
        return any(not c.is_finished for c in self.category_descriptors)

    def __repr__(self) -> str:
        return f"<Event {self.name} ({self.id})>"


class CategoryResult(Base):
    """
    Authoritative ranking for one category of one event.

    Written only by the results sync. Once a row exists for
    (event_id, category_id) it is never fetched again.
    """

    __tablename__ = "category_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    ranking: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("event_id", "category_id", name="uq_category_result_event_cat"),
    )

    def __repr__(self) -> str:
        return f"<CategoryResult event={self.event_id} cat={self.category_id}>"


class Prediction(Base, TimestampMixin):
    """
    A user's podium guess for one category of one event inside a league.

    ``event_finished`` is the scoring marker: the scoring run only reads
    rows where it is false and flips it in the same statement that stores
    the score, so a prediction is scored at most once.
    """

    __tablename__ = "predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    league_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="podium")

    guess_first: Mapped[str] = mapped_column(String(64), nullable=False)
    guess_second: Mapped[str] = mapped_column(String(64), nullable=False)
    guess_third: Mapped[str] = mapped_column(String(64), nullable=False)

    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    event_finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    score_details: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument, nullable=True
    )
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    scored_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("idx_predictions_event_league", "event_id", "league_id"),
        Index(
            "idx_predictions_unscored",
            "event_id",
            "category_id",
            "league_id",
            "event_finished",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Prediction {self.id} user={self.user_id} "
            f"event={self.event_id} cat={self.category_id}>"
        )


class Standing(Base):
    """
    Cumulative points for one user in one league.

    total_points always equals the sum of event_history points: both are
    written in the same transaction by the standings store.
    """

    __tablename__ = "standings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    league_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    event_history: Mapped[list["StandingEntry"]] = relationship(
        "StandingEntry",
        back_populates="standing",
        order_by="StandingEntry.id",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="uq_standing_league_user"),
        Index("idx_standings_league_points", "league_id", "total_points"),
    )

    def __repr__(self) -> str:
        return f"<Standing league={self.league_id} user={self.user_id} pts={self.total_points}>"


class StandingEntry(Base):
    """Append-only history row: points earned for one event category."""

    __tablename__ = "standing_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    standing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("standings.id"), nullable=False
    )
    event_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    category_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    standing: Mapped["Standing"] = relationship("Standing", back_populates="event_history")

    __table_args__ = (Index("idx_standing_entries_standing", "standing_id"),)

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventId": str(self.event_id),
            "categoryId": str(self.category_id) if self.category_id is not None else None,
            "categoryName": self.category_name,
            "points": self.points,
            "timestamp": self.recorded_at.isoformat() if self.recorded_at else None,
        }


class User(Base):
    """Read-only projection of platform users, used for leaderboard names."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.username}>"


class JobRun(Base):
    """
    Task execution audit log.

    Every background fetch/scoring run is logged here for monitoring
    and for debugging partial runs.
    """

    __tablename__ = "job_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_name: Mapped[str] = mapped_column(String(100), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, doc="'running', 'success', 'failed'"
    )
    records_processed: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONDocument, nullable=True
    )

    def __repr__(self) -> str:
        return f"<JobRun {self.job_name} status={self.status}>"
