"""Holding and transaction record service."""

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from fund_tracker.models.holding import Holding, FundTransaction
from fund_tracker.services.fees import calculate_shares
from fund_tracker.services.trading_time import today_str


class HoldingService:
    """Manages the user's locally recorded holdings."""

    async def list_holdings(self, session: AsyncSession) -> list[Holding]:
        result = await session.execute(select(Holding).order_by(Holding.id))
        return list(result.scalars().all())

    async def get_holding(self, session: AsyncSession, fund_code: str) -> Holding | None:
        result = await session.execute(
            select(Holding).where(Holding.fund_code == fund_code)
        )
        return result.scalar_one_or_none()

    async def upsert_holding(
        self,
        session: AsyncSession,
        fund_code: str,
        amount: float,
        buy_net_value: float,
        buy_date: str | None = None,
        fund_name: str = "",
        share_class: str = "A",
        buy_fee_rate: float = 0.0,
        service_fee_rate: float = 0.0,
    ) -> Holding:
        """Create or replace the holding for ``fund_code``; shares are recomputed.

        A-class purchase fees are deducted from the amount before converting to
        shares. C-class holdings carry no purchase fee.
        """
        fee_rate = buy_fee_rate if share_class == "A" else 0.0
        shares = calculate_shares(amount, buy_net_value, fee_rate)

        holding = await self.get_holding(session, fund_code)
        if holding is None:
            holding = Holding(fund_code=fund_code)
            session.add(holding)
        holding.fund_name = fund_name
        holding.share_class = share_class
        holding.amount = amount
        holding.buy_net_value = buy_net_value
        holding.shares = shares
        holding.buy_date = buy_date or today_str()
        holding.buy_fee_rate = buy_fee_rate
        holding.service_fee_rate = service_fee_rate
        await session.commit()
        return holding

    async def remove_holding(self, session: AsyncSession, fund_code: str) -> bool:
        result = await session.execute(delete(Holding).where(Holding.fund_code == fund_code))
        await session.commit()
        return result.rowcount > 0


class TransactionService:
    """Append-only local trade log."""

    async def list_transactions(
        self, session: AsyncSession, fund_code: str | None = None
    ) -> list[FundTransaction]:
        stmt = select(FundTransaction).order_by(
            FundTransaction.tx_date.desc(), FundTransaction.id.desc()
        )
        if fund_code:
            stmt = stmt.where(FundTransaction.fund_code == fund_code)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def add_transaction(
        self,
        session: AsyncSession,
        fund_code: str,
        tx_type: str,
        amount: float,
        tx_date: str,
        shares: float = 0.0,
        net_value: float = 0.0,
        fee: float = 0.0,
        fund_name: str = "",
        remark: str = "",
    ) -> FundTransaction:
        tx = FundTransaction(
            fund_code=fund_code,
            fund_name=fund_name,
            tx_type=tx_type,
            amount=amount,
            shares=shares,
            net_value=net_value,
            fee=fee,
            tx_date=tx_date,
            remark=remark,
        )
        session.add(tx)
        await session.commit()
        return tx

    async def delete_transaction(self, session: AsyncSession, tx_id: int) -> bool:
        result = await session.execute(
            delete(FundTransaction).where(FundTransaction.id == tx_id)
        )
        await session.commit()
        return result.rowcount > 0

    async def seed_from_holdings(
        self, session: AsyncSession, holdings: list[Holding]
    ) -> int:
        """Write one buy per holding into an empty log. Returns the number written."""
        count = await session.scalar(select(func.count()).select_from(FundTransaction))
        if count:
            return 0
        for h in holdings:
            session.add(
                FundTransaction(
                    fund_code=h.fund_code,
                    fund_name=h.fund_name,
                    tx_type="buy",
                    amount=h.amount,
                    shares=h.shares,
                    net_value=h.buy_net_value,
                    fee=round(h.amount - h.shares * h.buy_net_value, 2),
                    tx_date=h.buy_date,
                    remark="初始持仓",
                )
            )
        await session.commit()
        return len(holdings)


holding_service = HoldingService()
transaction_service = TransactionService()
