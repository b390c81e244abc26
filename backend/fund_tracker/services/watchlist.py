"""Watchlist and alert rule CRUD service."""

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from fund_tracker.models.fund import WatchlistItem, AlertRule


class WatchlistService:
    """Manages the watched fund codes, newest first."""

    async def list_codes(self, session: AsyncSession) -> list[str]:
        result = await session.execute(
            select(WatchlistItem.fund_code).order_by(WatchlistItem.position.desc())
        )
        return list(result.scalars().all())

    async def contains(self, session: AsyncSession, fund_code: str) -> bool:
        result = await session.execute(
            select(WatchlistItem.id).where(WatchlistItem.fund_code == fund_code)
        )
        return result.scalar_one_or_none() is not None

    async def add(self, session: AsyncSession, fund_code: str) -> bool:
        """Put ``fund_code`` at the head of the list. Returns False if already present."""
        if await self.contains(session, fund_code):
            return False
        top = await session.scalar(select(func.max(WatchlistItem.position)))
        session.add(WatchlistItem(fund_code=fund_code, position=(top or 0) + 1))
        await session.commit()
        return True

    async def remove(self, session: AsyncSession, fund_code: str) -> None:
        await session.execute(
            delete(WatchlistItem).where(WatchlistItem.fund_code == fund_code)
        )
        await session.commit()


class AlertService:
    """Stores alert rules. Rules are evaluated by the client, not here."""

    async def list_rules(
        self, session: AsyncSession, fund_code: str | None = None
    ) -> list[AlertRule]:
        stmt = select(AlertRule).order_by(AlertRule.id)
        if fund_code:
            stmt = stmt.where(AlertRule.fund_code == fund_code)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def add_rule(
        self,
        session: AsyncSession,
        fund_code: str,
        alert_type: str,
        threshold: float | None = None,
        enabled: bool = True,
    ) -> AlertRule:
        rule = AlertRule(
            fund_code=fund_code,
            alert_type=alert_type,
            threshold=threshold,
            enabled=enabled,
        )
        session.add(rule)
        await session.commit()
        return rule

    async def set_enabled(
        self, session: AsyncSession, rule_id: int, enabled: bool
    ) -> AlertRule | None:
        rule = await session.get(AlertRule, rule_id)
        if rule is None:
            return None
        rule.enabled = enabled
        await session.commit()
        return rule

    async def delete_rule(self, session: AsyncSession, rule_id: int) -> None:
        await session.execute(delete(AlertRule).where(AlertRule.id == rule_id))
        await session.commit()


watchlist_service = WatchlistService()
alert_service = AlertService()
