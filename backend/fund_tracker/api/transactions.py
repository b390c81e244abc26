"""Transaction log API routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fund_tracker.models.database import get_db
from fund_tracker.services.holdings import holding_service, transaction_service
from fund_tracker.api.schemas import TransactionCreateRequest, TransactionResponse

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(fund_code: str | None = None, db: AsyncSession = Depends(get_db)):
    txs = await transaction_service.list_transactions(db, fund_code)
    return [TransactionResponse.model_validate(tx, from_attributes=True) for tx in txs]


@router.post("", response_model=TransactionResponse)
async def add_transaction(req: TransactionCreateRequest, db: AsyncSession = Depends(get_db)):
    tx = await transaction_service.add_transaction(db, **req.model_dump())
    return TransactionResponse.model_validate(tx, from_attributes=True)


@router.post("/seed")
async def seed_transactions(db: AsyncSession = Depends(get_db)):
    """Create the initial buy records from current holdings, once."""
    holdings = await holding_service.list_holdings(db)
    created = await transaction_service.seed_from_holdings(db, holdings)
    return {"status": "ok", "created": created}


@router.delete("/{tx_id}")
async def delete_transaction(tx_id: int, db: AsyncSession = Depends(get_db)):
    if not await transaction_service.delete_transaction(db, tx_id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    return {"status": "ok"}
