"""Read-only scoring status for events."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.errors import InvalidInputError, parse_event_id
from app.services.storage.events import EventStore, parse_provider_timestamp
from app.services.storage.predictions import PredictionStore

MAX_EVENTS_LIMIT = 500


@dataclass
class EventScoreStatus:
    event_id: int
    predictions_total: int
    predictions_scored: int
    event_name: str | None = None
    last_scored: datetime | None = None

    @property
    def is_fully_scored(self) -> bool:
        return self.predictions_total > 0 and self.predictions_scored == self.predictions_total

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "eventId": str(self.event_id),
            "predictionsTotal": self.predictions_total,
            "predictionsScored": self.predictions_scored,
            "isFullyScored": self.is_fully_scored,
        }
        if self.event_name is not None:
            data["eventName"] = self.event_name
        if self.last_scored is not None:
            data["lastScored"] = self.last_scored.isoformat()
        return data


async def get_event_score_status(
    session: AsyncSession,
    event_id: Any,
    event_name: str | None = None,
) -> EventScoreStatus:
    """
    Scoring progress of one event.

    The event name is read from the stored event when not given.

    Raises:
        InvalidInputError: If the event id is invalid
    """
    numeric_id = parse_event_id(event_id)
    if event_name is None:
        event = await EventStore(session).get_by_numeric_id(numeric_id)
        if event is not None:
            event_name = event.name
    total, scored, last_scored = await PredictionStore(session).scoring_counts(numeric_id)
    return EventScoreStatus(
        event_id=numeric_id,
        predictions_total=total,
        predictions_scored=scored,
        event_name=event_name,
        last_scored=last_scored,
    )


def _parse_event_ids(value: Any) -> list[int] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [part for part in value.split(",") if part.strip()]
    if not isinstance(value, (list, tuple)):
        raise InvalidInputError("eventIds must be a list of event ids")
    return [parse_event_id(v) for v in value]


def _parse_date(query: dict[str, Any], key: str) -> datetime | None:
    value = query.get(key)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    parsed = parse_provider_timestamp(value)
    if parsed is None:
        raise InvalidInputError(f"Invalid {key}: {value!r}")
    return parsed


async def get_events_score_status(
    session: AsyncSession,
    query: dict[str, Any] | None = None,
    limit: int = 100,
    skip: int = 0,
) -> list[EventScoreStatus]:
    """
    Scoring progress for the events matching a query, newest first.

    Supported query keys: ``name`` (substring), ``eventIds``,
    ``startsAfter`` and ``startsBefore``.
    """
    query = query or {}
    if limit < 1 or limit > MAX_EVENTS_LIMIT:
        raise InvalidInputError(f"limit must be between 1 and {MAX_EVENTS_LIMIT}")
    if skip < 0:
        raise InvalidInputError("skip must not be negative")

    events = await EventStore(session).query(
        name=query.get("name"),
        event_ids=_parse_event_ids(query.get("eventIds")),
        starts_after=_parse_date(query, "startsAfter"),
        starts_before=_parse_date(query, "startsBefore"),
        limit=limit,
        skip=skip,
    )

    statuses = []
    for event in events:
        statuses.append(await get_event_score_status(session, event.id, event_name=event.name))
    return statuses
