"""Results synchronisation from the provider.

Pulls the event document and every category result document the provider
exposes, and stores them locally.

Fetching is final: once a result is stored for (event, category) it is
never fetched again, even if the category was still running at the time.
Re-invoking ``sync`` is therefore safe and is the retry mechanism.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import CategoryDescriptor
from app.services.ifsc_client import IFSCClient, ProviderAPIError
from app.services.storage.events import EventStore
from app.services.storage.results import ResultStore

logger = structlog.get_logger(__name__)

# Provider documents that do not match the expected shape surface as these
PARSE_ERRORS = (KeyError, ValueError, TypeError)


@dataclass
class SyncOutcome:
    """Outcome of one results sync."""

    ok: bool
    categories_processed: int = 0
    categories_fetched: int = 0
    error: str | None = None


class ResultsSyncClient:
    """Fetch provider results for an event and upsert them into storage."""

    def __init__(self, session: AsyncSession, provider: IFSCClient):
        self.session = session
        self.provider = provider
        self.events = EventStore(session)
        self.results = ResultStore(session)

    async def sync(self, event_id: int) -> SyncOutcome:
        """
        Synchronise results for one event.

        1. Refresh the stored event if any category is not finished
           (best effort).
        2. Store the event document if the event is not cached yet.
        3. For each category with a results URL, fetch and store its
           result unless one is already stored.

        Returns:
            SyncOutcome; ok is False only when the provider call or the
            document parsing failed
        """
        await self._refresh_event(event_id)

        processed = 0
        fetched = 0
        try:
            document = await self.provider.get_event(event_id)
            categories = document.get("d_cats")
            if not isinstance(categories, list):
                logger.warning("event_document_without_categories", event_id=event_id)
                return SyncOutcome(ok=False, error="Event document has no category list")

            if await self.events.get_by_numeric_id(event_id) is None:
                await self.events.create(event_id, document)
                await self.session.commit()

            for raw_category in categories:
                category = CategoryDescriptor.from_provider(raw_category)
                if not category.results_url:
                    continue

                if await self.results.exists(event_id, category.category_id):
                    processed += 1
                    continue

                result_document = await self.provider.get_category_results(
                    category.results_url
                )
                if not result_document:
                    continue

                await self.results.upsert(event_id, category, result_document)
                await self.session.commit()
                processed += 1
                fetched += 1

                logger.debug(
                    "category_result_stored",
                    event_id=event_id,
                    category_id=category.category_id,
                    category_name=category.name,
                    status=category.status,
                )

        except (ProviderAPIError, *PARSE_ERRORS) as e:
            await self.session.rollback()
            logger.error(
                "results_sync_failed",
                event_id=event_id,
                error=str(e),
                error_type=type(e).__name__,
                categories_processed=processed,
            )
            return SyncOutcome(ok=False, error=str(e))

        logger.info(
            "results_sync_complete",
            event_id=event_id,
            categories_processed=processed,
            categories_fetched=fetched,
        )
        return SyncOutcome(ok=True, categories_processed=processed, categories_fetched=fetched)

    async def _refresh_event(self, event_id: int) -> None:
        """Replace the stored event when some category is not finished yet."""
        event = await self.events.get_by_numeric_id(event_id)
        if event is None or not event.has_unfinished_categories:
            return

        try:
            document = await self.provider.get_event(event_id, use_cache=False)
            if document:
                await self.events.update(event, document)
                await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.warning(
                "event_refresh_failed",
                event_id=event_id,
                error=str(e),
            )
