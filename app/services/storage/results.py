"""Authoritative result store, keyed by (event_id, category_id)."""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import dialect_insert
from app.models.domain import CategoryDescriptor, CategoryResult, RankingEntry


class ResultStore:
    """Read and upsert category result documents."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(self, event_id: int, category_id: int) -> bool:
        result = await self.session.execute(
            select(CategoryResult.id)
            .where(
                CategoryResult.event_id == event_id,
                CategoryResult.category_id == category_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def upsert(
        self,
        event_id: int,
        category: CategoryDescriptor,
        document: dict[str, Any],
    ) -> None:
        """
        Insert or overwrite the result for one category.

        The ranking is normalised to RankingEntry dicts in provider order.

        Raises:
            KeyError, ValueError: If a ranking row cannot be parsed
        """
        ranking = [
            RankingEntry.from_provider(row).to_dict()
            for row in document.get("ranking") or []
        ]
        values = {
            "event_id": event_id,
            "category_id": category.category_id,
            "category_name": document.get("dcat") or category.name,
            "status": (document.get("status") or category.status).lower(),
            "ranking": ranking,
            "payload": document,
        }
        stmt = dialect_insert(self.session, CategoryResult).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["event_id", "category_id"],
            set_={
                "category_name": stmt.excluded.category_name,
                "status": stmt.excluded.status,
                "ranking": stmt.excluded.ranking,
                "payload": stmt.excluded.payload,
                "fetched_at": func.now(),
            },
        )
        await self.session.execute(stmt)

    async def list_for_event(self, event_id: int) -> list[CategoryResult]:
        result = await self.session.execute(
            select(CategoryResult)
            .where(CategoryResult.event_id == event_id)
            .order_by(CategoryResult.category_id)
        )
        return list(result.scalars().all())
