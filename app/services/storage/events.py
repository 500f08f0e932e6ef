"""Event store: locally cached provider event documents."""

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import dialect_insert
from app.models.domain import Event

logger = structlog.get_logger(__name__)


def parse_provider_timestamp(value: Any) -> datetime | None:
    """
    Parse provider timestamps.

    The provider mixes ISO-8601 (``2024-04-19T07:00:00Z``) with
    ``2024-04-19 07:00:00 UTC``. Unparseable values become None.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(" UTC"):
        text = text[: -len(" UTC")] + "+00:00"
    elif text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def provider_document_values(document: dict[str, Any]) -> dict[str, Any]:
    """Event column values from a provider event document."""
    return {
        "name": document.get("name") or "",
        "location": document.get("location"),
        "starts_at": parse_provider_timestamp(document.get("starts_at")),
        "ends_at": parse_provider_timestamp(document.get("ends_at")),
        "categories": list(document.get("d_cats") or []),
        "payload": dict(document),
    }


def apply_provider_document(event: Event, document: dict[str, Any]) -> Event:
    """Overwrite an Event's fields from a provider event document."""
    values = provider_document_values(document)
    values["name"] = values["name"] or event.name or ""
    for key, value in values.items():
        setattr(event, key, value)
    return event


class EventStore:
    """Data access for events owned by the events collaborator."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_numeric_id(self, event_id: int) -> Event | None:
        result = await self.session.execute(select(Event).where(Event.id == event_id))
        return result.scalar_one_or_none()

    async def update(self, event: Event, document: dict[str, Any]) -> Event:
        """Overwrite a stored event with a fresh provider document."""
        apply_provider_document(event, document)
        await self.session.flush()
        logger.info(
            "event_document_replaced",
            event_id=event.id,
            categories=len(event.categories),
        )
        return event

    async def create(self, event_id: int, document: dict[str, Any]) -> bool:
        """
        Store a provider event document that is not cached yet.

        An event stored concurrently by another caller is left as is.

        Returns:
            True if this call inserted the event
        """
        stmt = (
            dialect_insert(self.session, Event)
            .values(id=event_id, **provider_document_values(document))
            .on_conflict_do_nothing(index_elements=["id"])
        )
        result = await self.session.execute(stmt)
        created = result.rowcount == 1
        if created:
            logger.info("event_document_stored", event_id=event_id)
        return created

    async def query(
        self,
        name: str | None = None,
        event_ids: list[int] | None = None,
        starts_after: datetime | None = None,
        starts_before: datetime | None = None,
        limit: int = 100,
        skip: int = 0,
    ) -> list[Event]:
        """Query events, newest first."""
        query = select(Event)
        if name:
            query = query.where(Event.name.ilike(f"%{name}%"))
        if event_ids:
            query = query.where(Event.id.in_(event_ids))
        if starts_after:
            query = query.where(Event.starts_at >= starts_after)
        if starts_before:
            query = query.where(Event.starts_at < starts_before)
        query = (
            query.order_by(Event.starts_at.desc().nulls_last(), Event.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
