"""Error taxonomy for the scoring pipeline.

Every error carries a stable ``error_code`` for clients and the HTTP
status the API maps it to.
"""


class ScoringError(Exception):
    """Base class for failures surfaced by a fetch or scoring run."""

    error_code = "scoring_failed"
    status_code = 500

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class InvalidInputError(ScoringError):
    """Missing or malformed request input. Raised before any I/O."""

    error_code = "invalid_input"
    status_code = 400


class ProviderSyncError(ScoringError):
    """Network or parse failure talking to the results provider."""

    error_code = "provider_sync_failed"
    status_code = 502


class NotFoundError(ScoringError):
    """No stored results for the event, or no leagues with predictions."""

    error_code = "not_found"
    status_code = 404


class RunInProgressError(ScoringError):
    """Another scoring run for the same event holds the run lock."""

    error_code = "run_in_progress"
    status_code = 409


class PerItemError(ScoringError):
    """Scoring or persisting a single prediction failed."""

    error_code = "prediction_failed"
    status_code = 500


def parse_event_id(event_id) -> int:
    """
    Validate a provider event id.

    Accepts positive integers or their string form.

    Raises:
        InvalidInputError: If the id is missing or not a positive integer
    """
    if event_id is None or (isinstance(event_id, str) and not event_id.strip()):
        raise InvalidInputError("Missing required parameter: eventId is required")
    if isinstance(event_id, bool):
        raise InvalidInputError(f"Invalid eventId: {event_id!r}")
    try:
        numeric_id = int(str(event_id).strip())
    except ValueError:
        raise InvalidInputError(f"Invalid eventId: {event_id!r}") from None
    if numeric_id <= 0:
        raise InvalidInputError(f"Invalid eventId: {event_id!r}")
    return numeric_id
