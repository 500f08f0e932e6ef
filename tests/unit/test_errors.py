"""Unit tests for the error taxonomy and input validation."""

import pytest

from app.services.errors import (
    InvalidInputError,
    NotFoundError,
    PerItemError,
    ProviderSyncError,
    RunInProgressError,
    ScoringError,
    parse_event_id,
)


class TestParseEventId:
    """Test event id validation."""

    @pytest.mark.parametrize("value,expected", [(1405, 1405), ("1405", 1405), (" 7 ", 7)])
    def test_valid_ids(self, value, expected):
        assert parse_event_id(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_id(self, value):
        with pytest.raises(InvalidInputError, match="eventId is required"):
            parse_event_id(value)

    @pytest.mark.parametrize("value", ["abc", "12.5", 0, -3, "-3", True, [1405]])
    def test_invalid_id(self, value):
        with pytest.raises(InvalidInputError, match="Invalid eventId"):
            parse_event_id(value)


class TestErrorTaxonomy:
    """Each error maps to a stable code and HTTP status."""

    @pytest.mark.parametrize(
        "error_class,code,status",
        [
            (InvalidInputError, "invalid_input", 400),
            (NotFoundError, "not_found", 404),
            (RunInProgressError, "run_in_progress", 409),
            (ProviderSyncError, "provider_sync_failed", 502),
            (PerItemError, "prediction_failed", 500),
        ],
    )
    def test_codes(self, error_class, code, status):
        error = error_class("boom", event_id=1405)

        assert isinstance(error, ScoringError)
        assert error.error_code == code
        assert error.status_code == status
        assert error.message == "boom"
        assert error.context == {"event_id": 1405}
