"""Unit tests for podium extraction and provider document parsing."""

from datetime import datetime, timezone

import pytest

from app.models.domain import CategoryDescriptor, CategoryResult, Event, RankingEntry
from app.services.results.podium import extract_podium
from app.services.scoring.engine import Podium
from app.services.storage.events import parse_provider_timestamp


def stored_result(*athlete_ids):
    return CategoryResult(
        event_id=1405,
        category_id=3,
        category_name="BOULDER Men",
        status="finished",
        ranking=[
            RankingEntry.from_provider({"athlete_id": athlete_id, "rank": rank}).to_dict()
            for rank, athlete_id in enumerate(athlete_ids, start=1)
        ],
    )


class TestExtractPodium:
    """Test podium extraction from stored rankings."""

    def test_first_three_athletes_in_order(self):
        podium = extract_podium(stored_result(1001, 1002, 1003, 1004, 1005))

        assert podium == Podium("1001", "1002", "1003")

    def test_exactly_three_athletes(self):
        assert extract_podium(stored_result(7, 8, 9)) == Podium("7", "8", "9")

    @pytest.mark.parametrize("athletes", [(), (1001,), (1001, 1002)])
    def test_fewer_than_three_athletes_has_no_podium(self, athletes):
        assert extract_podium(stored_result(*athletes)) is None

    def test_ranking_is_used_positionally(self):
        """Stored order wins even when rank numbers disagree."""
        result = stored_result(1001, 1002, 1003)
        result.ranking[0]["rank"] = 3
        result.ranking[2]["rank"] = 1

        assert extract_podium(result) == Podium("1001", "1002", "1003")

    def test_missing_ranking(self):
        result = CategoryResult(event_id=1405, category_id=3, ranking=None)

        assert extract_podium(result) is None


class TestProviderDocuments:
    """Test parsing of provider event and ranking documents."""

    def test_category_descriptor(self):
        category = CategoryDescriptor.from_provider(
            {
                "dcat_id": "3",
                "dcat_name": "BOULDER Men",
                "status": "FINISHED",
                "full_results_url": "/api/v1/events/1405/result/3",
            }
        )

        assert category.category_id == 3
        assert category.name == "BOULDER Men"
        assert category.is_finished
        assert category.results_url == "/api/v1/events/1405/result/3"

    def test_category_without_results_url(self):
        category = CategoryDescriptor.from_provider({"dcat_id": 9, "status": "active"})

        assert category.results_url is None
        assert not category.is_finished

    def test_ranking_entry_joins_names(self):
        entry = RankingEntry.from_provider(
            {
                "athlete_id": 1364,
                "rank": 1,
                "firstname": "Janja",
                "lastname": "Garnbret",
                "country": "SLO",
                "score": "4T4z",
            }
        )

        assert entry.athlete_id == "1364"
        assert entry.rank == 1
        assert entry.name == "Janja Garnbret"
        assert entry.to_dict()["country"] == "SLO"

    def test_ranking_entry_requires_athlete_id(self):
        with pytest.raises(KeyError):
            RankingEntry.from_provider({"rank": 1})

    def test_event_unfinished_categories(self):
        event = Event(
            id=1405,
            categories=[
                {"dcat_id": 3, "status": "finished"},
                {"dcat_id": 7, "status": "active"},
            ],
        )

        assert event.has_unfinished_categories

    @pytest.mark.parametrize(
        "value",
        ["2024-04-19 07:00:00 UTC", "2024-04-19T07:00:00Z", "2024-04-19T07:00:00+00:00"],
    )
    def test_provider_timestamps(self, value):
        assert parse_provider_timestamp(value) == datetime(2024, 4, 19, 7, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "next tuesday", 1713510000])
    def test_unparseable_timestamps(self, value):
        assert parse_provider_timestamp(value) is None
