"""Scoring API endpoints.

Results fetching, scoring runs and scoring status for events.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_orchestrator
from app.services.errors import ScoringError
from app.services.scoring.orchestrator import ScoringOrchestrator
from app.services.scoring.status import get_event_score_status, get_events_score_status

router = APIRouter(prefix="/api/scoring", tags=["scoring"])
logger = structlog.get_logger(__name__)


class EventRequest(BaseModel):
    """Body of the per-event endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    event_id: int | str | None = Field(default=None, alias="eventId")


class EventsStatusRequest(BaseModel):
    """Body of the events-status endpoint."""

    query: dict[str, Any] = Field(default_factory=dict)
    limit: int = 100
    skip: int = 0


def error_response(e: ScoringError) -> JSONResponse:
    return JSONResponse(
        status_code=e.status_code,
        content={"success": False, "error": e.message, "errorCode": e.error_code},
    )


@router.post("/fetch-results")
async def fetch_results(
    body: EventRequest,
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Fetch and store provider results for an event without scoring.

    Categories that already have stored results are not fetched again.
    """
    result = await orchestrator.fetch_results(body.event_id)
    logger.info(
        "fetch_results_requested",
        event_id=body.event_id,
        success=result.success,
        categories_processed=result.categories_processed,
    )
    return JSONResponse(status_code=result.status_code, content=result.to_response())


@router.post("/score-event")
async def score_event(
    body: EventRequest,
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Run scoring for an event.

    Safe to call repeatedly: predictions already scored are not scored
    again, and a run that failed midway is resumed.
    """
    result = await orchestrator.run_scoring(body.event_id)
    return JSONResponse(status_code=result.status_code, content=result.to_response())


@router.get("/status/{event_id}")
async def event_status(
    event_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Scoring progress of one event."""
    try:
        status = await get_event_score_status(db, event_id)
    except ScoringError as e:
        return error_response(e)
    return {"status": status.to_dict()}


@router.post("/events-status")
async def events_status(
    body: EventsStatusRequest,
    db: AsyncSession = Depends(get_db),
):
    """Scoring progress for the events matching a query; count is the page size."""
    try:
        statuses = await get_events_score_status(
            db, query=body.query, limit=body.limit, skip=body.skip
        )
    except ScoringError as e:
        return error_response(e)
    return {
        "events": [status.to_dict() for status in statuses],
        "count": len(statuses),
    }
