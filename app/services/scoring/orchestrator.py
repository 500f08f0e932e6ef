"""Scoring run orchestration.

Drives one scoring run for an event:

1. Sync provider results into storage
2. Extract the podium of every stored category
3. Find the leagues with predictions for the event
4. For each league x category with a podium, score every unfinished
   prediction, store the score and add the points to standings

Each prediction is scored and committed in its own transaction together
with its standings update. There is no run-wide rollback: a run that
fails midway leaves the predictions it already scored finished, and the
rest are picked up by the next run for the same event. Retrying is the
recovery mechanism.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import Prediction
from app.services.errors import (
    NotFoundError,
    PerItemError,
    ProviderSyncError,
    ScoringError,
    parse_event_id,
)
from app.services.results.podium import CategoryPodium, PodiumExtractor
from app.services.results.sync import ResultsSyncClient
from app.services.scoring.engine import DEFAULT_RULES, Podium, ScoringEngine, ScoringRules
from app.services.scoring.locking import EventRunLock
from app.services.standings.store import StandingsStore, StandingUpdate
from app.services.storage.predictions import PODIUM, PredictionStore

logger = structlog.get_logger(__name__)


@dataclass
class RunProgress:
    """Where a run is, for logging and partial-failure reporting."""

    stage: str = "validate"
    league_id: str | None = None
    category_id: int | None = None
    processed: int = 0
    categories_with_podium: int = 0
    leagues_scored: set[str] = field(default_factory=set)

    def context(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "league_id": self.league_id,
            "category_id": self.category_id,
            "processed": self.processed,
            "leagues_scored": len(self.leagues_scored),
        }


@dataclass
class ScoringRunResult:
    """Outcome of a scoring run."""

    success: bool
    processed_count: int = 0
    leagues_processed: int = 0
    categories_with_podium: int = 0
    error: str | None = None
    error_code: str | None = None
    message: str | None = None
    status_code: int = 200

    def to_response(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "processed": self.processed_count,
            "leagues": self.leagues_processed,
        }
        if self.message:
            data["message"] = self.message
        if self.error:
            data["error"] = self.error
            data["errorCode"] = self.error_code
        return data


@dataclass
class FetchResultsResult:
    """Outcome of a results-only fetch."""

    success: bool
    categories_processed: int = 0
    error: str | None = None
    error_code: str | None = None
    message: str | None = None
    status_code: int = 200

    def to_response(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "categoriesProcessed": self.categories_processed,
        }
        if self.message:
            data["message"] = self.message
        if self.error:
            data["error"] = self.error
            data["errorCode"] = self.error_code
        return data


class ScoringOrchestrator:
    """
    Run results fetches and scoring runs for events.

    This is the error boundary of a run: it never raises, it returns a
    structured result instead.
    """

    def __init__(
        self,
        session: AsyncSession,
        sync_client: ResultsSyncClient,
        rules: ScoringRules | None = None,
        run_lock: EventRunLock | None = None,
        engine: ScoringEngine | None = None,
        standings: StandingsStore | None = None,
    ):
        """
        Args:
            session: Database session shared by all stores of the run
            sync_client: Provider results sync
            rules: Points table; defaults to exact 20/15/10, no in-podium bonus
            run_lock: Per-event lock; defaults to no locking
            engine: Scoring engine
            standings: Standings store
        """
        self.session = session
        self.sync_client = sync_client
        self.rules = rules or DEFAULT_RULES
        self.run_lock = run_lock or EventRunLock(None)
        self.engine = engine or ScoringEngine(self.rules)
        self.extractor = PodiumExtractor(session)
        self.predictions = PredictionStore(session)
        self.standings = standings or StandingsStore(session)

    async def fetch_results(self, event_id: Any) -> FetchResultsResult:
        """Sync provider results for an event without scoring."""
        try:
            numeric_id = parse_event_id(event_id)
            outcome = await self.sync_client.sync(numeric_id)
        except ScoringError as e:
            return FetchResultsResult(
                success=False,
                error=e.message,
                error_code=e.error_code,
                status_code=e.status_code,
            )
        except Exception as e:
            await self.session.rollback()
            logger.error("fetch_results_failed", event_id=event_id, error=str(e), exc_info=True)
            return FetchResultsResult(
                success=False,
                error="Failed to fetch full results",
                error_code="fetch_failed",
                message=str(e),
                status_code=500,
            )

        if not outcome.ok:
            return FetchResultsResult(
                success=False,
                error="Failed to fetch event results from provider",
                error_code=ProviderSyncError.error_code,
                message=outcome.error,
                status_code=ProviderSyncError.status_code,
            )

        message = (
            f"Successfully fetched and stored results for {outcome.categories_processed} categories"
            if outcome.categories_processed > 0
            else "No categories were processed"
        )
        return FetchResultsResult(
            success=True,
            categories_processed=outcome.categories_processed,
            message=message,
        )

    async def run_scoring(self, event_id: Any) -> ScoringRunResult:
        """
        Score every unfinished prediction of an event.

        Returns:
            ScoringRunResult with totals, or the failure and how far the
            run got
        """
        progress = RunProgress()
        started_at = datetime.now(timezone.utc)

        try:
            numeric_id = parse_event_id(event_id)
            logger.info("scoring_run_started", event_id=numeric_id)
            async with self.run_lock.hold(numeric_id):
                await self._run(numeric_id, progress)

        except ScoringError as e:
            await self.session.rollback()
            context = {"event_id": event_id, **e.context, **progress.context()}
            logger.error(
                "scoring_run_failed",
                error=e.message,
                error_code=e.error_code,
                **context,
            )
            return self._failure(progress, e.message, e.error_code, e.status_code)

        except Exception as e:
            await self.session.rollback()
            logger.error(
                "scoring_run_failed",
                event_id=event_id,
                error=str(e),
                exc_info=True,
                **progress.context(),
            )
            return self._failure(
                progress, "Failed to score event", "scoring_failed", 500, message=str(e)
            )

        logger.info(
            "scoring_run_complete",
            event_id=event_id,
            processed=progress.processed,
            leagues=len(progress.leagues_scored),
            categories_with_podium=progress.categories_with_podium,
            duration_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
        )
        return ScoringRunResult(
            success=True,
            processed_count=progress.processed,
            leagues_processed=len(progress.leagues_scored),
            categories_with_podium=progress.categories_with_podium,
            message=(
                f"Successfully processed {progress.processed} predictions "
                f"across {len(progress.leagues_scored)} leagues"
            ),
        )

    def _failure(
        self,
        progress: RunProgress,
        error: str,
        error_code: str,
        status_code: int,
        message: str | None = None,
    ) -> ScoringRunResult:
        return ScoringRunResult(
            success=False,
            processed_count=progress.processed,
            leagues_processed=len(progress.leagues_scored),
            categories_with_podium=progress.categories_with_podium,
            error=error,
            error_code=error_code,
            message=message,
            status_code=status_code,
        )

    async def _run(self, event_id: int, progress: RunProgress) -> None:
        progress.stage = "sync"
        outcome = await self.sync_client.sync(event_id)
        if not outcome.ok:
            raise ProviderSyncError(
                "Failed to fetch event results from provider",
                provider_error=outcome.error,
            )

        progress.stage = "podiums"
        category_podiums = await self.extractor.all_category_podiums(event_id)
        if not category_podiums:
            raise NotFoundError("No category results found for this event")

        scorable = []
        for category in category_podiums:
            if category.podium is None:
                logger.info(
                    "category_skipped_no_podium",
                    event_id=event_id,
                    category_id=category.category_id,
                    category_name=category.category_name,
                )
                continue
            scorable.append(category)
        progress.categories_with_podium = len(scorable)

        progress.stage = "leagues"
        league_ids = await self.predictions.distinct_league_ids(event_id)
        if not league_ids:
            raise NotFoundError("No leagues found with predictions for this event")

        progress.stage = "scoring"
        for league_id in league_ids:
            progress.league_id = league_id
            league_processed = 0

            for category in scorable:
                progress.category_id = category.category_id
                predictions = await self.predictions.query_by_filter(
                    event_id=event_id,
                    category_id=category.category_id,
                    league_id=league_id,
                    event_finished=False,
                    prediction_type=PODIUM,
                )
                for prediction in predictions:
                    if await self._score_prediction(event_id, league_id, category, prediction):
                        league_processed += 1
                        progress.processed += 1

            if league_processed:
                progress.leagues_scored.add(league_id)
            logger.info(
                "league_scored",
                event_id=event_id,
                league_id=league_id,
                predictions=league_processed,
            )

    async def _score_prediction(
        self,
        event_id: int,
        league_id: str,
        category: CategoryPodium,
        prediction: Prediction,
    ) -> bool:
        """
        Score one prediction and add its points to standings.

        Returns:
            True if scored, False if another run finished it first

        Raises:
            PerItemError: If scoring or persisting fails
        """
        prediction_id = prediction.id
        user_id = prediction.user_id
        try:
            guess = Podium(
                first=prediction.guess_first,
                second=prediction.guess_second,
                third=prediction.guess_third,
            )
            detail = self.engine.score(category.podium, guess, self.rules)

            claimed = await self.predictions.update_score_details(
                prediction_id, PODIUM, detail, category.category_id
            )
            if not claimed:
                logger.warning(
                    "prediction_already_scored",
                    prediction_id=prediction_id,
                    event_id=event_id,
                )
                return False

            await self.standings.update(
                StandingUpdate(
                    league_id=league_id,
                    user_id=user_id,
                    event_id=event_id,
                    points=detail.total,
                    category_id=category.category_id,
                    category_name=category.category_name,
                )
            )
            await self.session.commit()

        except ScoringError:
            raise
        except Exception as e:
            raise PerItemError(
                f"Failed to score prediction {prediction_id}: {e}",
                prediction_id=prediction_id,
                user_id=user_id,
            ) from e

        logger.debug(
            "prediction_scored",
            prediction_id=prediction_id,
            user_id=user_id,
            league_id=league_id,
            category_id=category.category_id,
            total=detail.total,
        )
        return True
