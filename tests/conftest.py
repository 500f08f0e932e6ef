"""Pytest configuration and fixtures for CragPicks tests."""

import copy

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import domain  # noqa: F401  (registers tables on Base.metadata)
from app.models.base import Base
from app.models.domain import Prediction
from app.services.ifsc_client import IFSCClient, TTLCache

EVENT_ID = 1405
PROVIDER_BASE_URL = "https://ifsc.test"
EVENT_PATH = f"/api/v1/events/{EVENT_ID}/"
BOULDER_MEN_PATH = f"/api/v1/events/{EVENT_ID}/result/3"
BOULDER_WOMEN_PATH = f"/api/v1/events/{EVENT_ID}/result/7"


def ranking_rows(*athlete_ids):
    """Provider ranking rows in rank order."""
    return [
        {
            "athlete_id": athlete_id,
            "rank": position,
            "firstname": f"Climber{athlete_id}",
            "lastname": "Test",
            "country": "SUI",
            "score": f"{4 - min(position, 4)}T4z",
        }
        for position, athlete_id in enumerate(athlete_ids, start=1)
    ]


def event_document(status="finished", categories=None):
    """A provider event document with two boulder categories."""
    if categories is None:
        categories = [
            {
                "dcat_id": 3,
                "dcat_name": "BOULDER Men",
                "status": status,
                "full_results_url": BOULDER_MEN_PATH,
            },
            {
                "dcat_id": 7,
                "dcat_name": "BOULDER Women",
                "status": status,
                "full_results_url": BOULDER_WOMEN_PATH,
            },
        ]
    return {
        "id": EVENT_ID,
        "name": "IFSC World Cup Keqiao 2024",
        "location": "Keqiao",
        "starts_at": "2024-04-19 00:00:00 UTC",
        "ends_at": "2024-04-21 23:59:00 UTC",
        "d_cats": categories,
    }


def result_document(category_name, *athlete_ids):
    return {
        "event": "IFSC World Cup Keqiao 2024",
        "dcat": category_name,
        "status": "finished",
        "ranking": ranking_rows(*athlete_ids),
    }


class FakeProvider:
    """
    Serves canned provider documents through httpx.MockTransport.

    A route value may be a document, an httpx.Response, or a list of
    either (served in order, the last one repeating).
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls: list[str] = []
        self.headers: list[httpx.Headers] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)
        self.headers.append(request.headers)
        if path not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        route = self.routes[path]
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=copy.deepcopy(route))

    def count(self, path: str) -> int:
        return self.calls.count(path)

    def client(self, cache_ttl: float = 60, max_retries: int = 0) -> IFSCClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return IFSCClient(
            http_client=http_client,
            base_url=PROVIDER_BASE_URL,
            cache=TTLCache(cache_ttl),
            max_retries=max_retries,
        )


@pytest.fixture
def provider():
    """Provider serving a finished event with two full categories."""
    return FakeProvider(
        {
            EVENT_PATH: event_document(),
            BOULDER_MEN_PATH: result_document("BOULDER Men", 1001, 1002, 1003, 1004),
            BOULDER_WOMEN_PATH: result_document("BOULDER Women", 2001, 2002, 2003, 2004),
        }
    )


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


def make_prediction(league_id, user_id, category_id, guess, event_id=EVENT_ID):
    first, second, third = guess
    return Prediction(
        league_id=league_id,
        event_id=event_id,
        category_id=category_id,
        category_name="BOULDER Men" if category_id == 3 else "BOULDER Women",
        user_id=user_id,
        type="podium",
        guess_first=first,
        guess_second=second,
        guess_third=third,
        locked=True,
        event_finished=False,
        total_points=0,
    )


@pytest.fixture
def add_predictions(session_factory):
    """Persist predictions in their own session and return their ids."""

    async def _add(*predictions):
        async with session_factory() as session:
            session.add_all(predictions)
            await session.commit()
            return [p.id for p in predictions]

    return _add


@pytest.fixture
def provider_factory():
    """The FakeProvider class, for tests that need custom routes."""
    return FakeProvider


@pytest.fixture
def documents():
    """Builders for provider event and result documents."""

    class Documents:
        event = staticmethod(event_document)
        result = staticmethod(result_document)
        ranking = staticmethod(ranking_rows)
        event_path = EVENT_PATH
        men_path = BOULDER_MEN_PATH
        women_path = BOULDER_WOMEN_PATH

    return Documents


@pytest.fixture
def prediction_factory():
    """Builder for unscored podium predictions."""
    return make_prediction
