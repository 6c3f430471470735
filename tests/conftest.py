import os
from datetime import datetime, timedelta, timezone

# Must be set before outwit.core.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from outwit.core.database import Base, get_db
from outwit.core.config import get_settings
from outwit.models.models import Castaway, Episode, Player
from outwit.services.point_tables import PROPHECY_QUESTION_IDS


@pytest.fixture
async def engine():
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
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def season(db):
    """
    Eight castaways, four players (Dana never submits picks) and three
    finalized episodes with no events yet.
    """
    castaways = [
        Castaway(id=i, name=name, original_tribe=tribe, current_tribe=tribe, is_active=True)
        for i, (name, tribe) in enumerate([
            ("Colby", "VATU"), ("Genevieve", "VATU"), ("Rizzo", "VATU"), ("Q", "VATU"),
            ("Joe", "CILA"), ("Cirie", "CILA"), ("Ozzy", "KALO"), ("Coach", "KALO"),
        ], start=1)
    ]
    players = [
        Player(id=1, display_name="Alice", is_commissioner=True),
        Player(id=2, display_name="Bob", is_commissioner=False),
        Player(id=3, display_name="Charlie", is_commissioner=False),
        Player(id=4, display_name="Dana", is_commissioner=False),
    ]
    episodes = [
        Episode(id=100 + n, episode_number=n, is_finalized=True)
        for n in (1, 2, 3)
    ]
    db.add_all(castaways + players + episodes)
    await db.commit()
    return {"castaways": castaways, "players": players, "episodes": episodes}


def all_answers(value: bool = True) -> dict[str, bool]:
    return {str(q): value for q in sorted(PROPHECY_QUESTION_IDS)}


def valid_payload(**overrides) -> dict:
    payload = {
        "trio_castaway_1": 1,
        "trio_castaway_2": 2,
        "trio_castaway_3": 3,
        "icky_castaway": 4,
        "prophecy_answers": all_answers(),
    }
    payload.update(overrides)
    return payload


def make_token(player_id: int, expires_in: timedelta = timedelta(hours=1)) -> str:
    # Stands in for the external auth service
    settings = get_settings()
    claims = {"sub": str(player_id), "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def auth_headers(player_id: int) -> dict[str, str]:
    token = make_token(player_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory):
    from outwit.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
