"""Admin API endpoints.

Provides manual task triggers for background results fetches and scoring
runs. These endpoints should be protected in production (not implemented
here).
"""

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from app.services.errors import InvalidInputError, parse_event_id

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = structlog.get_logger(__name__)


class TaskTriggerRequest(BaseModel):
    """Body of a task trigger."""

    model_config = ConfigDict(populate_by_name=True)

    event_id: int | str | None = Field(default=None, alias="eventId")


class TaskTriggerResponse(BaseModel):
    """Response from task trigger."""

    task_name: str
    task_id: str
    status: str
    message: str


# Map of friendly names to actual Celery task names
TASK_MAP = {
    "fetch-results": "app.tasks.scoring.fetch_results_task",
    "score-event": "app.tasks.scoring.score_event_task",
}


@router.post("/trigger-task/{task_name}", response_model=TaskTriggerResponse)
async def trigger_task(task_name: str, body: TaskTriggerRequest) -> TaskTriggerResponse:
    """
    Manually trigger a background task for an event.

    Available tasks:
    - fetch-results: Fetch and store provider results
    - score-event: Run scoring for the event
    """
    if task_name not in TASK_MAP:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown task: {task_name}. Available: {list(TASK_MAP.keys())}",
        )

    try:
        event_id = parse_event_id(body.event_id)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=e.message)

    celery_task_name = TASK_MAP[task_name]

    try:
        from app.tasks import celery_app

        result = celery_app.send_task(celery_task_name, args=[event_id])

        logger.info(
            "task_triggered_manually",
            task_name=task_name,
            celery_task=celery_task_name,
            event_id=event_id,
            task_id=result.id,
        )

        return TaskTriggerResponse(
            task_name=task_name,
            task_id=result.id,
            status="submitted",
            message=f"Task {task_name} for event {event_id} submitted. Check Celery logs for progress.",
        )

    except Exception as e:
        logger.error(
            "task_trigger_failed",
            task_name=task_name,
            event_id=event_id,
            error=str(e),
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to trigger task: {str(e)}",
        )


@router.get("/tasks", response_model=dict[str, str])
async def list_tasks() -> dict[str, str]:
    """List all available tasks that can be triggered manually."""
    return TASK_MAP
