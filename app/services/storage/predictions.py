"""Prediction store: the reads and the one write the scoring run needs."""

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import Prediction
from app.services.scoring.engine import ScoreDetail

PODIUM = "podium"


class PredictionStore:
    """Data access for predictions owned by the predictions collaborator."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def query_by_filter(
        self,
        event_id: int,
        category_id: int | None = None,
        league_id: str | None = None,
        event_finished: bool | None = None,
        prediction_type: str | None = PODIUM,
    ) -> list[Prediction]:
        """Predictions for an event matching the given filters, oldest first."""
        query = select(Prediction).where(Prediction.event_id == event_id)
        if category_id is not None:
            query = query.where(Prediction.category_id == category_id)
        if league_id is not None:
            query = query.where(Prediction.league_id == league_id)
        if event_finished is not None:
            query = query.where(Prediction.event_finished.is_(event_finished))
        if prediction_type is not None:
            query = query.where(Prediction.type == prediction_type)
        result = await self.session.execute(
            query.order_by(Prediction.id).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def distinct_league_ids(self, event_id: int) -> list[str]:
        """League ids with any prediction for the event, sorted."""
        result = await self.session.execute(
            select(Prediction.league_id)
            .where(Prediction.event_id == event_id)
            .distinct()
            .order_by(Prediction.league_id)
        )
        return list(result.scalars().all())

    async def update_score_details(
        self,
        prediction_id: int,
        strategy: str,
        detail: ScoreDetail,
        category_id: int | str | None = None,
    ) -> bool:
        """
        Store a score and mark the prediction finished, in one statement.

        The update only matches unfinished predictions. ``score_details``
        maps strategy type to detail; entries for other strategies are kept.

        Returns:
            True if this call claimed the prediction, False if it was
            already finished
        """
        if category_id is not None:
            detail.category_id = str(category_id)

        stored = await self.session.scalar(
            select(Prediction.score_details).where(Prediction.id == prediction_id)
        )
        score_details = dict(stored or {})
        score_details[strategy] = detail.to_dict()

        stmt = (
            update(Prediction)
            .where(
                Prediction.id == prediction_id,
                Prediction.event_finished.is_(False),
            )
            .values(
                score_details=score_details,
                total_points=Prediction.total_points + detail.total,
                event_finished=True,
                scored_at=detail.calculated_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def scoring_counts(self, event_id: int) -> tuple[int, int, datetime | None]:
        """
        Scoring progress for an event.

        Returns:
            (total predictions, scored predictions, latest scored_at)
        """
        result = await self.session.execute(
            select(
                func.count(Prediction.id),
                func.count(Prediction.id).filter(Prediction.event_finished.is_(True)),
                func.max(Prediction.scored_at),
            ).where(Prediction.event_id == event_id)
        )
        total, scored, last_scored = result.one()
        return total or 0, scored or 0, last_scored
