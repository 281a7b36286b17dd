from __future__ import annotations
from typing import Literal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import EcoEarnError
from ..deps import get_db, require_admin
from ..models import AdminTransaction, TransactionType
from ..schemas import TransactionCreate, TransactionRead, BalanceRead
from ..services import ledger

router = APIRouter(prefix="/transactions", tags=["transactions"])

def _txn_read(t: AdminTransaction) -> TransactionRead:
    return TransactionRead(
        id=t.id, type=t.type.value, amount=float(t.amount), description=t.description,
        user_email=t.user_email, user_id=t.user_id, points_redeemed=t.points_redeemed, timestamp=t.timestamp,
    )

@router.get("", response_model=list[TransactionRead])
async def list_transactions(
    search: str | None = None,
    type: Literal["all", "add", "withdraw"] = Query("all"),
    claims: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows = await ledger.list_transactions(db, search=search, type_filter=type)
    return [_txn_read(t) for t in rows]

@router.get("/balance", response_model=BalanceRead)
async def admin_balance(claims: dict = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return BalanceRead(balance=float(await ledger.get_balance(db)))

@router.post("", response_model=TransactionRead, status_code=201)
async def add_or_withdraw_funds(
    payload: TransactionCreate,
    claims: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        t = await ledger.record_transaction(
            db,
            type=TransactionType(payload.type),
            amount=payload.amount,
            description=payload.description,
        )
    except EcoEarnError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _txn_read(t)
