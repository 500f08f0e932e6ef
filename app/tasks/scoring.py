"""Results fetch and scoring run tasks.

Background wrappers around the scoring orchestrator. Each run writes a
JobRun audit row; the run's own outcome is returned as the task result.
"""

import asyncio
from datetime import datetime, timezone

import redis.asyncio as redis
import structlog

from app.config import get_settings
from app.models.base import get_task_session
from app.models.domain import JobRun
from app.services.ifsc_client import IFSCClient
from app.services.results import ResultsSyncClient
from app.services.scoring.engine import load_default_rules
from app.services.scoring.locking import EventRunLock
from app.services.scoring.orchestrator import ScoringOrchestrator
from app.tasks import celery_app

logger = structlog.get_logger(__name__)


@celery_app.task(bind=True, soft_time_limit=270, time_limit=300)
def fetch_results_task(self, event_id: int):
    """
    Fetch and store provider results for one event.

    Categories that already have stored results are skipped.
    """
    return asyncio.run(_run_job(self, "fetch_results", event_id, score=False))


@celery_app.task(bind=True)
def score_event_task(self, event_id: int):
    """
    Run scoring for one event.

    1. Sync provider results
    2. Score every unfinished podium prediction
    3. Add points to league standings
    """
    return asyncio.run(_run_job(self, "score_event", event_id, score=True))


async def _run_job(task, job_name: str, event_id: int, score: bool) -> dict:
    """Run a fetch or scoring job inside a task session with a JobRun record."""
    settings = get_settings()
    started_at = datetime.now(timezone.utc)
    outcome: dict = {"success": False}
    records = 0

    async with get_task_session() as session:
        job_run = JobRun(
            job_name=job_name,
            started_at=started_at,
            status="running",
            job_metadata={"event_id": event_id},
        )
        session.add(job_run)
        await session.commit()

        redis_client = redis.from_url(settings.redis_url)
        error_message = None
        try:
            async with IFSCClient() as provider:
                orchestrator = ScoringOrchestrator(
                    session=session,
                    sync_client=ResultsSyncClient(session, provider),
                    rules=load_default_rules(settings.config_path),
                    run_lock=EventRunLock(
                        redis_client, timeout=settings.scoring_lock_timeout_seconds
                    ),
                )
                if score:
                    result = await orchestrator.run_scoring(event_id)
                    records = result.processed_count
                else:
                    result = await orchestrator.fetch_results(event_id)
                    records = result.categories_processed
                outcome = result.to_response()

            if not outcome["success"]:
                error_message = outcome.get("error")

            logger.info(
                f"{job_name}_task_complete",
                event_id=event_id,
                success=outcome["success"],
                records=records,
                duration_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
            )

        except Exception as e:
            error_message = str(e)
            logger.error(
                f"{job_name}_task_failed",
                event_id=event_id,
                error=str(e),
                task_id=task.request.id,
            )

        finally:
            await redis_client.aclose()
            job_run.completed_at = datetime.now(timezone.utc)
            job_run.status = "failed" if error_message else "success"
            job_run.error_message = error_message
            job_run.records_processed = records
            job_run.job_metadata = {"event_id": event_id, **outcome}
            await session.commit()

    return outcome
