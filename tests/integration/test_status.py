"""Integration tests for scoring status reads."""

from datetime import datetime, timezone

import pytest

from app.models.domain import Event
from app.services.errors import InvalidInputError
from app.services.results import ResultsSyncClient
from app.services.scoring.orchestrator import ScoringOrchestrator
from app.services.scoring.status import get_event_score_status, get_events_score_status


class TestEventScoreStatus:
    """Test get_event_score_status."""

    async def test_before_scoring(self, session, add_predictions, prediction_factory):
        await add_predictions(
            prediction_factory("league-a", "user-1", 3, ("1001", "1002", "1003")),
            prediction_factory("league-a", "user-2", 3, ("1001", "1002", "1003")),
        )

        status = await get_event_score_status(session, "1405")

        assert status.to_dict() == {
            "eventId": "1405",
            "predictionsTotal": 2,
            "predictionsScored": 0,
            "isFullyScored": False,
        }

    async def test_after_scoring(self, session, provider, add_predictions, prediction_factory):
        await add_predictions(
            prediction_factory("league-a", "user-1", 3, ("1001", "1002", "1003")),
            prediction_factory("league-a", "user-2", 7, ("2001", "2002", "2003")),
        )
        orchestrator = ScoringOrchestrator(session, ResultsSyncClient(session, provider.client()))
        await orchestrator.run_scoring(1405)

        status = await get_event_score_status(session, 1405, event_name="Keqiao")

        assert status.predictions_scored == 2
        assert status.is_fully_scored
        data = status.to_dict()
        assert data["eventName"] == "Keqiao"
        assert "lastScored" in data

    async def test_name_from_stored_event(self, session, session_factory):
        async with session_factory() as other:
            other.add(Event(id=1405, name="IFSC World Cup Keqiao 2024", categories=[], payload={}))
            await other.commit()

        status = await get_event_score_status(session, "1405")

        assert status.to_dict()["eventName"] == "IFSC World Cup Keqiao 2024"

    async def test_event_without_predictions_is_not_fully_scored(self, session):
        status = await get_event_score_status(session, 9999)

        assert status.predictions_total == 0
        assert not status.is_fully_scored

    async def test_invalid_event_id(self, session):
        with pytest.raises(InvalidInputError):
            await get_event_score_status(session, "abc")


@pytest.fixture
async def events(session_factory, add_predictions, prediction_factory):
    async with session_factory() as session:
        session.add_all(
            [
                Event(
                    id=1401,
                    name="IFSC World Cup Seoul 2024",
                    starts_at=datetime(2024, 4, 26, tzinfo=timezone.utc),
                    categories=[],
                    payload={},
                ),
                Event(
                    id=1405,
                    name="IFSC World Cup Keqiao 2024",
                    starts_at=datetime(2024, 4, 19, tzinfo=timezone.utc),
                    categories=[],
                    payload={},
                ),
                Event(
                    id=1410,
                    name="IFSC World Cup Innsbruck 2024",
                    starts_at=datetime(2024, 6, 26, tzinfo=timezone.utc),
                    categories=[],
                    payload={},
                ),
            ]
        )
        await session.commit()
    await add_predictions(prediction_factory("league-a", "user-1", 3, ("1", "2", "3")))


class TestEventsScoreStatus:
    """Test get_events_score_status."""

    async def test_newest_first(self, session, events):
        statuses = await get_events_score_status(session)

        assert [s.event_id for s in statuses] == [1410, 1401, 1405]
        assert statuses[2].event_name == "IFSC World Cup Keqiao 2024"
        assert statuses[2].predictions_total == 1

    async def test_filter_by_name(self, session, events):
        statuses = await get_events_score_status(session, {"name": "keqiao"})

        assert [s.event_id for s in statuses] == [1405]

    @pytest.mark.parametrize("event_ids", [["1401", "1405"], [1401, 1405], "1401,1405"])
    async def test_filter_by_ids(self, session, events, event_ids):
        statuses = await get_events_score_status(session, {"eventIds": event_ids})

        assert [s.event_id for s in statuses] == [1401, 1405]

    async def test_filter_by_start_dates(self, session, events):
        statuses = await get_events_score_status(
            session,
            {"startsAfter": "2024-04-20T00:00:00Z", "startsBefore": "2024-06-01T00:00:00Z"},
        )

        assert [s.event_id for s in statuses] == [1401]

    async def test_pagination(self, session, events):
        statuses = await get_events_score_status(session, limit=1, skip=1)

        assert [s.event_id for s in statuses] == [1401]

    @pytest.mark.parametrize(
        "query,limit,skip",
        [
            ({"startsAfter": "soon"}, 100, 0),
            ({"eventIds": "abc"}, 100, 0),
            ({"eventIds": 1405}, 100, 0),
            ({}, 0, 0),
            ({}, 501, 0),
            ({}, 10, -1),
        ],
    )
    async def test_invalid_queries(self, session, events, query, limit, skip):
        with pytest.raises(InvalidInputError):
            await get_events_score_status(session, query, limit=limit, skip=skip)
