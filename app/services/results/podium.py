"""Podium extraction from stored category rankings."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import CategoryResult
from app.services.scoring.engine import Podium
from app.services.storage.results import ResultStore


@dataclass(frozen=True)
class CategoryPodium:
    """Official podium of one category, or None while it has <3 ranked athletes."""

    category_id: int
    category_name: str
    podium: Podium | None


def extract_podium(result: CategoryResult) -> Podium | None:
    """
    Take the top three athletes of a stored ranking.

    The stored ranking is already in rank order; it is not re-sorted.
    """
    ranking = result.ranking or []
    if len(ranking) < 3:
        return None
    return Podium.from_ids(str(row["athlete_id"]) for row in ranking[:3])


class PodiumExtractor:
    """Derive podiums for every stored category of an event."""

    def __init__(self, session: AsyncSession):
        self.results = ResultStore(session)

    async def all_category_podiums(self, event_id: int) -> list[CategoryPodium]:
        results = await self.results.list_for_event(event_id)
        return [
            CategoryPodium(
                category_id=result.category_id,
                category_name=result.category_name,
                podium=extract_podium(result),
            )
            for result in results
        ]
