from __future__ import annotations
import math
import uuid
from dataclasses import dataclass

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import like_pattern
from ..models import Report


@dataclass
class ReportPage:
    items: list[Report]
    total: int
    page: int
    pages: int


async def count_reports(db: AsyncSession) -> int:
    return int((await db.execute(select(func.count()).select_from(Report))).scalar_one())

async def get_report(db: AsyncSession, report_id: uuid.UUID) -> Report | None:
    return (await db.execute(select(Report).where(Report.id == report_id))).scalar_one_or_none()

async def list_reports(
    db: AsyncSession,
    *,
    search: str | None = None,
    order: str = "newest",
    page: int = 1,
    per_page: int = 8,
) -> ReportPage:
    base = select(Report)
    if search:
        base = base.where(Report.user_name.ilike(like_pattern(search), escape="\\"))

    total = int((await db.execute(select(func.count()).select_from(base.subquery()))).scalar_one())
    pages = math.ceil(total / per_page) if total else 0

    ts = Report.timestamp.asc() if order == "oldest" else Report.timestamp.desc()
    page = max(1, page)
    rows = (await db.execute(
        base.order_by(ts).offset((page - 1) * per_page).limit(per_page)
    )).scalars().all()
    return ReportPage(items=list(rows), total=total, page=page, pages=pages)
