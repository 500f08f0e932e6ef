"""Provider results: sync into storage and podium extraction."""

from app.services.results.podium import CategoryPodium, PodiumExtractor, extract_podium
from app.services.results.sync import ResultsSyncClient, SyncOutcome

__all__ = [
    "CategoryPodium",
    "PodiumExtractor",
    "ResultsSyncClient",
    "SyncOutcome",
    "extract_podium",
]
