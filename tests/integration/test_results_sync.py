"""Integration tests for results synchronisation."""

import httpx
from sqlalchemy import select

from app.models.domain import CategoryResult, Event
from app.services.results import ResultsSyncClient
from app.services.storage.events import EventStore, apply_provider_document


async def stored_results(session_factory):
    async with session_factory() as session:
        result = await session.execute(
            select(CategoryResult).order_by(CategoryResult.category_id)
        )
        return list(result.scalars().all())


async def stored_event(session_factory, event_id=1405):
    async with session_factory() as session:
        return await session.get(Event, event_id)


class TestResultsSync:
    """Test the ResultsSyncClient class."""

    async def test_stores_every_category(self, session, session_factory, provider, documents):
        outcome = await ResultsSyncClient(session, provider.client()).sync(1405)

        assert outcome.ok
        assert outcome.categories_processed == 2
        assert outcome.categories_fetched == 2

        results = await stored_results(session_factory)
        assert [(r.category_id, r.category_name) for r in results] == [
            (3, "BOULDER Men"),
            (7, "BOULDER Women"),
        ]
        assert [row["athlete_id"] for row in results[0].ranking] == [
            "1001",
            "1002",
            "1003",
            "1004",
        ]
        assert results[0].ranking[0]["name"] == "Climber1001 Test"

    async def test_caches_the_event_when_missing(self, session, session_factory, provider):
        await ResultsSyncClient(session, provider.client()).sync(1405)

        event = await stored_event(session_factory)
        assert event is not None
        assert event.name == "IFSC World Cup Keqiao 2024"
        assert len(event.categories) == 2

    async def test_event_stored_by_concurrent_sync_is_kept(
        self, session, session_factory, provider
    ):
        """Another sync stores the event between the lookup and the insert."""
        async with session_factory() as other:
            other.add(Event(id=1405, name="Stored elsewhere", categories=[], payload={}))
            await other.commit()

        sync_client = ResultsSyncClient(session, provider.client())

        async def not_found(event_id):
            return None

        sync_client.events.get_by_numeric_id = not_found
        outcome = await sync_client.sync(1405)

        assert outcome.ok
        assert outcome.categories_processed == 2
        event = await stored_event(session_factory)
        assert event.name == "Stored elsewhere"

    async def test_create_ignores_existing_event(self, session, documents):
        events = EventStore(session)

        assert await events.create(1405, documents.event())
        assert not await events.create(1405, documents.event())

    async def test_stored_categories_are_not_fetched_again(
        self, session, provider_factory, documents
    ):
        """Skip-if-exists holds even while the category is still running."""
        provider = provider_factory(
            {
                documents.event_path: documents.event(status="active"),
                documents.men_path: documents.result("BOULDER Men", 1001, 1002),
                documents.women_path: documents.result("BOULDER Women", 2001, 2002, 2003),
            }
        )
        client = ResultsSyncClient(session, provider.client(cache_ttl=0))

        first = await client.sync(1405)
        second = await client.sync(1405)

        assert first.categories_fetched == 2
        assert second.ok
        assert second.categories_processed == 2
        assert second.categories_fetched == 0
        assert provider.count(documents.men_path) == 1
        assert provider.count(documents.women_path) == 1

    async def test_categories_without_results_url_are_skipped(
        self, session, session_factory, provider_factory, documents
    ):
        provider = provider_factory(
            {
                documents.event_path: documents.event(
                    categories=[
                        {"dcat_id": 3, "dcat_name": "BOULDER Men", "status": "finished",
                         "full_results_url": documents.men_path},
                        {"dcat_id": 5, "dcat_name": "LEAD Men", "status": "pending"},
                    ]
                ),
                documents.men_path: documents.result("BOULDER Men", 1001, 1002, 1003),
            }
        )

        outcome = await ResultsSyncClient(session, provider.client()).sync(1405)

        assert outcome.ok
        assert outcome.categories_processed == 1
        assert [r.category_id for r in await stored_results(session_factory)] == [3]

    async def test_empty_result_documents_are_skipped(
        self, session, session_factory, provider_factory, documents
    ):
        provider = provider_factory(
            {
                documents.event_path: documents.event(),
                documents.men_path: {},
                documents.women_path: documents.result("BOULDER Women", 2001, 2002, 2003),
            }
        )

        outcome = await ResultsSyncClient(session, provider.client()).sync(1405)

        assert outcome.ok
        assert outcome.categories_processed == 1
        assert [r.category_id for r in await stored_results(session_factory)] == [7]

    async def test_refreshes_event_with_unfinished_categories(
        self, session, session_factory, provider, documents
    ):
        """The fresh event document feeds the result fetch through the cache."""
        event = apply_provider_document(Event(id=1405), documents.event(status="active"))
        session.add(event)
        await session.commit()

        outcome = await ResultsSyncClient(session, provider.client()).sync(1405)

        assert outcome.ok
        assert provider.count(documents.event_path) == 1
        refreshed = await stored_event(session_factory)
        assert not refreshed.has_unfinished_categories

    async def test_finished_event_is_not_refreshed(
        self, session, provider, documents
    ):
        event = apply_provider_document(Event(id=1405), documents.event(status="finished"))
        session.add(event)
        await session.commit()
        client = provider.client()
        await client.get_event(1405)

        await ResultsSyncClient(session, client).sync(1405)

        # Only the warm-up request; the sync was served from the cache
        assert provider.count(documents.event_path) == 1

    async def test_refresh_failure_does_not_abort_sync(
        self, session, session_factory, provider_factory, documents
    ):
        event = apply_provider_document(Event(id=1405), documents.event(status="active"))
        session.add(event)
        await session.commit()
        provider = provider_factory(
            {
                documents.event_path: [httpx.Response(503), documents.event()],
                documents.men_path: documents.result("BOULDER Men", 1001, 1002, 1003),
                documents.women_path: documents.result("BOULDER Women", 2001, 2002, 2003),
            }
        )

        outcome = await ResultsSyncClient(session, provider.client()).sync(1405)

        assert outcome.ok
        assert outcome.categories_processed == 2
        assert provider.count(documents.event_path) == 2

    async def test_provider_failure(self, session, session_factory, provider_factory, documents):
        provider = provider_factory({documents.event_path: httpx.Response(500)})

        outcome = await ResultsSyncClient(session, provider.client()).sync(1405)

        assert not outcome.ok
        assert outcome.categories_processed == 0
        assert "500" in outcome.error
        assert await stored_results(session_factory) == []

    async def test_missing_category_list(self, session, provider_factory, documents):
        document = documents.event()
        del document["d_cats"]
        provider = provider_factory({documents.event_path: document})

        outcome = await ResultsSyncClient(session, provider.client()).sync(1405)

        assert not outcome.ok
        assert outcome.error == "Event document has no category list"

    async def test_malformed_ranking(self, session, provider_factory, documents):
        provider = provider_factory(
            {
                documents.event_path: documents.event(),
                documents.men_path: {"dcat": "BOULDER Men", "ranking": [{"rank": 1}]},
            }
        )

        outcome = await ResultsSyncClient(session, provider.client()).sync(1405)

        assert not outcome.ok
