"""Remote announcements and version checks."""

import logging
import time
from datetime import datetime
from typing import Any

import httpx
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from fund_tracker.config import REMOTE_CONFIG_URL, REMOTE_CONFIG_TIMEOUT
from fund_tracker.models.announcement import ShownAnnouncement

logger = logging.getLogger(__name__)


def _parse_time(value: str) -> datetime:
    # Remote config uses ISO 8601, sometimes with a trailing Z
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed.astimezone().replace(tzinfo=None) if parsed.tzinfo else parsed


def is_version_lower(v1: str, v2: str) -> bool:
    """True if dotted version ``v1`` is older than ``v2``."""
    parts1 = [int(p) if p.isdigit() else 0 for p in v1.split(".")]
    parts2 = [int(p) if p.isdigit() else 0 for p in v2.split(".")]
    length = max(len(parts1), len(parts2))
    parts1 += [0] * (length - len(parts1))
    parts2 += [0] * (length - len(parts2))
    return parts1 < parts2


def check_need_update(current_version: str, config: dict[str, Any]) -> dict[str, bool]:
    need_update = is_version_lower(current_version, config.get("version", "0"))
    force_update = bool(config.get("forceUpdate")) or is_version_lower(
        current_version, config.get("minVersion", "0")
    )
    return {"need_update": need_update, "force_update": force_update}


class AnnouncementService:
    """Fetches the remote config and tracks which announcements were shown."""

    def __init__(
        self,
        url: str = REMOTE_CONFIG_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self._transport = transport

    async def fetch_remote_config(self) -> dict[str, Any] | None:
        """Return the remote config, or None when it cannot be fetched."""
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=REMOTE_CONFIG_TIMEOUT
            ) as client:
                resp = await client.get(
                    self.url,
                    params={"t": int(time.time() * 1000)},
                    headers={"Cache-Control": "no-cache"},
                )
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch remote config: {e}")
            return None

    async def shown_ids(self, session: AsyncSession) -> set[str]:
        result = await session.execute(select(ShownAnnouncement.announcement_id))
        return set(result.scalars().all())

    async def active_announcements(
        self,
        session: AsyncSession,
        config: dict[str, Any],
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Announcements inside their time window, minus show-once ones already seen."""
        now = now or datetime.now()
        shown = await self.shown_ids(session)
        active = []
        for item in config.get("announcements") or []:
            try:
                start = _parse_time(item["startTime"])
                end = _parse_time(item["endTime"])
            except (KeyError, ValueError):
                logger.warning(f"Skipping announcement with bad time range: {item.get('id')}")
                continue
            if not start <= now <= end:
                continue
            if item.get("showOnce") and item.get("id") in shown:
                continue
            active.append(item)
        return active

    async def mark_shown(self, session: AsyncSession, announcement_id: str) -> None:
        if await session.get(ShownAnnouncement, announcement_id) is None:
            session.add(ShownAnnouncement(announcement_id=announcement_id))
            await session.commit()

    async def clear_shown(self, session: AsyncSession) -> None:
        await session.execute(delete(ShownAnnouncement))
        await session.commit()


announcement_service = AnnouncementService()
