"""
Shared fixtures: an in-memory SQLite database per test and helpers for
creating creators with social accounts.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import SocialAccount, User
from app.services.store import CreatorStore


@pytest_asyncio.fixture
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


@pytest_asyncio.fixture
async def session(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session):
    return CreatorStore(session)


@pytest.fixture
def make_creator(session):
    """
    Factory: await make_creator(email, lat, lon, accounts=[{...}]).

    Each account dict needs at least "platform"; followers, engagement_rate
    and topics are optional.
    """
    counter = {"n": 0}

    async def factory(email, latitude=None, longitude=None, accounts=None, **fields):
        user = User(email=email, latitude=latitude, longitude=longitude, **fields)
        for acct in accounts or []:
            counter["n"] += 1
            user.social_accounts.append(SocialAccount(
                platform=acct["platform"],
                platform_user_id=acct.get("platform_user_id", f"{acct['platform']}-{counter['n']}"),
                username=acct.get("username", email.split("@")[0]),
                followers=acct.get("followers", 10000),
                engagement_rate=acct.get("engagement_rate", 3.0),
                profile_data={"recent_topics": acct.get("topics", [])},
                access_token=acct.get("access_token"),
                last_synced_at=acct.get("last_synced_at"),
            ))
        session.add(user)
        await session.commit()
        return user

    return factory
