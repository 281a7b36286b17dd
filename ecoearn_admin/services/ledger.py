from __future__ import annotations
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import select, func, case, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidAmount, StoreWriteFailed
from ..db import like_pattern
from ..models import AdminTransaction, TransactionType

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
# Numeric(14, 2) holds at most 12 integer digits
MAX_AMOUNT = Decimal("1e12")

def parse_amount(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount()
    if not amount.is_finite() or amount <= 0 or amount >= MAX_AMOUNT:
        raise InvalidAmount()
    try:
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmount()
    if amount <= 0:
        raise InvalidAmount()
    return amount

async def get_balance(db: AsyncSession) -> Decimal:
    signed = case(
        (AdminTransaction.type == TransactionType.ADD, AdminTransaction.amount),
        else_=-AdminTransaction.amount,
    )
    total = (await db.execute(select(func.coalesce(func.sum(signed), 0)))).scalar_one()
    return Decimal(str(total)).quantize(CENTS)

async def record_transaction(
    db: AsyncSession,
    *,
    type: TransactionType,
    amount: Any,
    description: str | None = None,
    user_email: str | None = None,
    user_id: str | None = None,
    points_redeemed: int | None = None,
) -> AdminTransaction:
    value = parse_amount(amount)
    if type == TransactionType.WITHDRAW:
        balance = await get_balance(db)
        if value > balance:
            raise InvalidAmount(f"Insufficient admin balance ({balance} available)")

    if not description or not description.strip():
        description = "Admin added funds" if type == TransactionType.ADD else "Admin withdrew funds"

    txn = AdminTransaction(
        type=type,
        amount=value,
        description=description.strip(),
        user_email=user_email,
        user_id=user_id,
        points_redeemed=points_redeemed,
    )
    db.add(txn)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("ledger write failed: %s", e)
        raise StoreWriteFailed("Failed to process funds. Please try again.") from e
    await db.refresh(txn)
    logger.info("admin %s of %s recorded (%s)", type.value, value, txn.id)
    return txn

async def list_transactions(
    db: AsyncSession,
    *,
    search: str | None = None,
    type_filter: str = "all",
) -> list[AdminTransaction]:
    stmt = select(AdminTransaction)
    if type_filter != "all":
        stmt = stmt.where(AdminTransaction.type == TransactionType(type_filter))
    if search:
        pat = like_pattern(search)
        stmt = stmt.where(or_(
            AdminTransaction.description.ilike(pat, escape="\\"),
            AdminTransaction.user_email.ilike(pat, escape="\\"),
            AdminTransaction.user_id.ilike(pat, escape="\\"),
        ))
    rows = (await db.execute(stmt.order_by(AdminTransaction.timestamp.desc()))).scalars().all()
    return list(rows)
