"""Tests for remote announcements and version checks."""

from datetime import datetime

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from fund_tracker.models.database import Base
from fund_tracker.services.announcements import (
    AnnouncementService,
    check_need_update,
    is_version_lower,
)

CONFIG = {
    "version": "1.5.0",
    "minVersion": "1.2.0",
    "forceUpdate": False,
    "updateUrl": "https://example.com/download",
    "announcements": [
        {
            "id": "spring-festival",
            "title": "春节休市",
            "content": "春节期间暂停估值更新",
            "startTime": "2026-02-10T00:00:00",
            "endTime": "2026-02-20T00:00:00",
            "showOnce": True,
        },
        {
            "id": "always",
            "title": "数据说明",
            "content": "估值仅供参考",
            "startTime": "2026-01-01T00:00:00",
            "endTime": "2026-12-31T00:00:00",
            "showOnce": False,
        },
        {
            "id": "expired",
            "title": "旧公告",
            "startTime": "2025-01-01T00:00:00",
            "endTime": "2025-01-31T00:00:00",
        },
        {"id": "broken", "title": "缺少时间"},
    ],
}

NOW = datetime(2026, 2, 16, 10, 0)


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
    await engine.dispose()


def test_is_version_lower():
    assert is_version_lower("1.4.0", "1.5.0")
    assert is_version_lower("1.4", "1.4.1")
    assert is_version_lower("1.9.0", "1.10.0")
    assert not is_version_lower("1.5.0", "1.5.0")
    assert not is_version_lower("2.0.0", "1.9.9")


def test_check_need_update():
    assert check_need_update("1.4.0", CONFIG) == {"need_update": True, "force_update": False}
    assert check_need_update("1.1.0", CONFIG) == {"need_update": True, "force_update": True}
    assert check_need_update("1.5.0", CONFIG) == {"need_update": False, "force_update": False}
    assert check_need_update("1.5.0", {**CONFIG, "forceUpdate": True})["force_update"] is True


@pytest.mark.asyncio
async def test_fetch_remote_config():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "t" in request.url.params
        return httpx.Response(200, json=CONFIG)

    service = AnnouncementService(
        url="https://example.com/config.json", transport=httpx.MockTransport(handler)
    )
    assert await service.fetch_remote_config() == CONFIG


@pytest.mark.asyncio
async def test_fetch_remote_config_failure():
    service = AnnouncementService(
        url="https://example.com/config.json",
        transport=httpx.MockTransport(lambda r: httpx.Response(404)),
    )
    assert await service.fetch_remote_config() is None


@pytest.mark.asyncio
async def test_active_announcements(db_session):
    service = AnnouncementService()
    active = await service.active_announcements(db_session, CONFIG, now=NOW)
    assert [a["id"] for a in active] == ["spring-festival", "always"]


@pytest.mark.asyncio
async def test_show_once_hidden_after_marked(db_session):
    service = AnnouncementService()
    await service.mark_shown(db_session, "spring-festival")
    await service.mark_shown(db_session, "spring-festival")
    await service.mark_shown(db_session, "always")

    active = await service.active_announcements(db_session, CONFIG, now=NOW)
    assert [a["id"] for a in active] == ["always"]

    await service.clear_shown(db_session)
    assert await service.shown_ids(db_session) == set()
