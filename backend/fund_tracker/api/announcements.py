"""Announcement and update-check routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fund_tracker.config import APP_VERSION
from fund_tracker.models.database import get_db
from fund_tracker.services.announcements import announcement_service, check_need_update
from fund_tracker.api.schemas import AnnouncementsResponse

router = APIRouter(prefix="/api/announcements", tags=["announcements"])


@router.get("", response_model=AnnouncementsResponse)
async def get_announcements(version: str = APP_VERSION, db: AsyncSession = Depends(get_db)):
    config = await announcement_service.fetch_remote_config()
    if config is None:
        return AnnouncementsResponse(announcements=[], need_update=False, force_update=False)
    active = await announcement_service.active_announcements(db, config)
    return AnnouncementsResponse(
        announcements=active,
        latest_version=config.get("version"),
        update_url=config.get("updateUrl"),
        **check_need_update(version, config),
    )


@router.post("/{announcement_id}/shown")
async def mark_shown(announcement_id: str, db: AsyncSession = Depends(get_db)):
    await announcement_service.mark_shown(db, announcement_id)
    return {"status": "ok"}


@router.delete("/shown")
async def clear_shown(db: AsyncSession = Depends(get_db)):
    await announcement_service.clear_shown(db)
    return {"status": "ok"}
