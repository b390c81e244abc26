"""Tests for database models."""

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from fund_tracker.models.database import Base
from fund_tracker.models.announcement import ShownAnnouncement
from fund_tracker.models.cache import CacheSnapshot
from fund_tracker.models.fund import WatchlistItem, AlertRule
from fund_tracker.models.holding import Holding, FundTransaction


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session() as session:
        yield session
    await engine.dispose()


@pytest.mark.asyncio
async def test_create_holding(db_session):
    holding = Holding(
        fund_code="000001",
        fund_name="华夏成长混合",
        amount=1000.0,
        buy_net_value=1.25,
        shares=800.0,
        buy_date="2026-02-06",
    )
    db_session.add(holding)
    await db_session.commit()

    assert holding.id is not None
    assert holding.share_class == "A"
    assert holding.service_fee_rate == 0.0
    assert holding.created_at


@pytest.mark.asyncio
async def test_holding_code_unique(db_session):
    db_session.add(Holding(fund_code="000001", amount=1, buy_net_value=1, shares=1, buy_date="2026-02-06"))
    await db_session.commit()
    db_session.add(Holding(fund_code="000001", amount=2, buy_net_value=1, shares=2, buy_date="2026-02-07"))
    with pytest.raises(IntegrityError):
        await db_session.commit()


@pytest.mark.asyncio
async def test_create_transaction(db_session):
    tx = FundTransaction(
        fund_code="000001",
        tx_type="auto_invest",
        amount=200.0,
        tx_date="2026-02-13",
    )
    db_session.add(tx)
    await db_session.commit()

    assert tx.id is not None
    assert tx.fee == 0.0
    assert tx.remark == ""


@pytest.mark.asyncio
async def test_watchlist_and_alert(db_session):
    db_session.add(WatchlistItem(fund_code="000001", position=1))
    rule = AlertRule(fund_code="000001", alert_type="down", threshold=-3.0)
    db_session.add(rule)
    await db_session.commit()

    assert rule.enabled is True
    item = (await db_session.get(WatchlistItem, 1))
    assert item.fund_code == "000001"


@pytest.mark.asyncio
async def test_cache_snapshot_and_shown(db_session):
    db_session.add(CacheSnapshot(cache_key="estimate_000001", payload='{"est_nav": 1.2}'))
    db_session.add(ShownAnnouncement(announcement_id="spring-festival"))
    await db_session.commit()

    snap = await db_session.get(CacheSnapshot, "estimate_000001")
    assert snap.updated_at
    assert (await db_session.get(ShownAnnouncement, "spring-festival")).shown_at
